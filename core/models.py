# core/models.py
from __future__ import annotations

import uuid
from datetime import datetime, timedelta

from django.db import models
from django.utils import timezone


def now_ms() -> datetime:
    """Current time truncated to millisecond precision.

    Browser clients keep timestamps as milliseconds; storing the same precision
    lets them echo `modifiedAt` back and compare equal.
    """
    now = timezone.now()
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


class TrackedQuerySet(models.QuerySet):
    def alive(self):
        return self.filter(deleted_at__isnull=True)


class TrackedManager(models.Manager):
    """Default manager: hides soft-deleted rows."""

    def get_queryset(self):
        return TrackedQuerySet(self.model, using=self._db).alive()


class TrackedModel(models.Model):
    """
    Base model for records edited concurrently by several clients.

    - UUID primary key: opaque identity, never derived from user input.
    - updated_at: authoritative 'last modified' timestamp, used as the optimistic lock version.
    - revision: write counter, bumped on every successful write.
    - deleted_at: soft delete tombstone.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    created_at = models.DateTimeField(default=now_ms, editable=False)
    updated_at = models.DateTimeField(default=now_ms, editable=False)

    revision = models.BigIntegerField(default=0)

    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = TrackedManager.from_queryset(TrackedQuerySet)()
    all_objects = TrackedQuerySet.as_manager()

    class Meta:
        abstract = True

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def stamp_modified(self) -> datetime:
        """Move updated_at strictly forward and bump the revision.

        Two writes inside the same millisecond (or a clock step backwards)
        still produce a newer timestamp than the stored one.
        """
        stamp = now_ms()
        previous = self.updated_at
        if previous is not None and stamp <= previous:
            stamp = previous + timedelta(milliseconds=1)
        self.updated_at = stamp
        self.revision = int(self.revision or 0) + 1
        return stamp

    def soft_delete(self, *, save: bool = True):
        """Mark as deleted (tombstone)."""
        self.stamp_modified()
        self.deleted_at = self.updated_at
        if save:
            self.save(update_fields=["deleted_at", "updated_at", "revision"])

    def restore(self, *, save: bool = True):
        self.stamp_modified()
        self.deleted_at = None
        if save:
            self.save(update_fields=["deleted_at", "updated_at", "revision"])

    def delete(self, using=None, keep_parents=False, *, hard: bool = False):
        """
        Guardrail: default to soft-delete.

        Pass hard=True only for true data removal; owned child rows cascade with it.
        """
        if hard:
            return super().delete(using=using, keep_parents=keep_parents)
        self.soft_delete(save=True)
        return (1, {self.__class__.__name__: 1})
