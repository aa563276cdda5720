from __future__ import annotations

from collections import defaultdict

from django.conf import settings
from django.core.management.base import BaseCommand
from django.db import transaction

from documents.kinds import KIND_SPECS
from documents.models import Document, IdentifierCounter
from documents.numbering import DEFAULT_PATTERN, parse_number


class Command(BaseCommand):
    help = "Seed or repair per-(kind, year) identifier counters from the numbers already issued."

    def add_arguments(self, parser):
        parser.add_argument("--dry-run", action="store_true", help="Report what would change without writing.")
        parser.add_argument(
            "--force",
            action="store_true",
            help="Set counters to the highest issued number even when that lowers them.",
        )

    def handle(self, *args, **opts):
        dry_run = bool(opts.get("dry_run"))
        force = bool(opts.get("force"))

        pattern = getattr(settings, "DOCSYNC_NUMBER_PATTERN", DEFAULT_PATTERN)
        highest: dict[tuple[str, int], int] = defaultdict(int)
        skipped: dict[str, int] = defaultdict(int)
        for spec in KIND_SPECS.values():
            prefix = spec.number_prefix
            numbers = Document.all_objects.filter(kind=spec.kind).values_list("number", flat=True)
            for number in numbers.iterator():
                parsed = parse_number(number, prefix, pattern)
                if parsed is None:
                    skipped[spec.kind] += 1
                    continue
                year, seq = parsed
                key = (spec.kind, year)
                highest[key] = max(highest[key], seq)

        for kind, count in sorted(skipped.items()):
            self.stderr.write(
                self.style.WARNING(f"{kind}: skipped {count} number(s) not matching pattern {pattern!r}")
            )

        changed = 0
        with transaction.atomic():
            for (kind, year), seq in sorted(highest.items()):
                counter, _created = IdentifierCounter.objects.select_for_update().get_or_create(
                    kind=kind, year=year, defaults={"last_value": 0}
                )
                target = seq if force else max(seq, counter.last_value)
                if target == counter.last_value:
                    continue
                self.stdout.write(f"{kind} {year}: {counter.last_value} -> {target}")
                changed += 1
                if not dry_run:
                    counter.last_value = target
                    counter.save(update_fields=["last_value"])
            if dry_run:
                transaction.set_rollback(True)

        suffix = " (dry run)" if dry_run else ""
        self.stdout.write(self.style.SUCCESS(f"Counters checked: {len(highest)}, changed: {changed}{suffix}"))
