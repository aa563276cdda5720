from decimal import Decimal

from django.test import SimpleTestCase, TestCase

from documents.errors import ReconciliationError
from documents.models import Document, DocumentItem, DocumentRemark, ItemDetail
from documents.reconcile import (
    Existing,
    New,
    apply_item_amounts,
    classify,
    reconcile_items,
    reconcile_remarks,
    round_amount,
)
from documents.snapshot import IncomingRow


def item_row(ref, name, details=()):
    return IncomingRow(
        ref=ref,
        values={"product_name": name},
        children=[
            IncomingRow(ref=d_ref, values={"detail": text, "unit_price": Decimal(price), "qty": Decimal(qty)})
            for d_ref, text, price, qty in details
        ],
    )


def remark_row(ref, text):
    return IncomingRow(ref=ref, values={"text": text, "is_completed": False})


class ClassifyTests(SimpleTestCase):
    def test_membership_decides_not_id_shape(self):
        persisted = {"7f1c2a9e-0000-4000-8000-000000000001"}
        rows = [
            remark_row("7f1c2a9e-0000-4000-8000-000000000001", "kept"),
            remark_row("7f1c2a9e-0000-4000-8000-000000000002", "looks persisted"),
            remark_row("temp-1", "local"),
            remark_row(None, "no id"),
        ]
        plan = classify(rows, persisted)
        self.assertIsInstance(plan[0], Existing)
        self.assertEqual([type(p) for p in plan[1:]], [New, New, New])
        self.assertEqual([p.index for p in plan], [0, 1, 2, 3])

    def test_duplicate_persisted_id_is_rejected(self):
        rows = [remark_row("a", "one"), remark_row("a", "two")]
        with self.assertRaises(ReconciliationError) as ctx:
            classify(rows, {"a"}, path="remarks")
        self.assertIn("remarks[1].id", ctx.exception.fields)

    def test_repeated_local_ids_are_just_new_rows(self):
        plan = classify([remark_row("tmp", "x"), remark_row("tmp", "y")], set())
        self.assertEqual([type(p) for p in plan], [New, New])


class AmountTests(SimpleTestCase):
    def test_round_half_up(self):
        self.assertEqual(round_amount(Decimal("2.5")), 3)
        self.assertEqual(round_amount(Decimal("1.49")), 1)
        self.assertEqual(round_amount(Decimal("-2.5")), -3)

    def test_item_total_is_sum_of_details(self):
        rows = [item_row(None, "Banner", [(None, "a", "10.50", "3"), (None, "b", "0.25", "2")])]
        apply_item_amounts(rows)
        self.assertEqual([d.values["amount"] for d in rows[0].children], [32, 1])
        self.assertEqual(rows[0].values["total"], 33)


class CollectionReconcilerTests(TestCase):
    def setUp(self):
        self.doc = Document.objects.create(kind="quotation", number="QTN-TEST-0001", bill_to="Acme")
        self.i1 = DocumentItem.objects.create(document=self.doc, order=0, product_name="I1")
        self.i2 = DocumentItem.objects.create(document=self.doc, order=1, product_name="I2")
        self.d1 = ItemDetail.objects.create(item=self.i1, order=0, detail="d1", unit_price=Decimal("5"), qty=Decimal("2"), amount=10)

    def test_upsert_cycle(self):
        result = reconcile_items(self.doc, [item_row(str(self.i1.pk), "X"), item_row("temp-new", "Y")])

        items = list(self.doc.items.all())
        self.assertEqual(len(items), 2)
        self.assertEqual((items[0].pk, items[0].product_name), (self.i1.pk, "X"))
        self.assertEqual(items[1].product_name, "Y")
        self.assertNotIn(str(items[1].pk), {str(self.i1.pk), str(self.i2.pk), "temp-new"})
        self.assertFalse(DocumentItem.objects.filter(pk=self.i2.pk).exists())
        self.assertIn(str(self.i2.pk), result.deleted)

    def test_order_follows_submission(self):
        reconcile_items(self.doc, [item_row(str(self.i2.pk), "I2"), item_row(str(self.i1.pk), "I1")])
        self.assertEqual([i.product_name for i in self.doc.items.all()], ["I2", "I1"])

    def test_nested_details_are_reconciled(self):
        rows = [
            item_row(
                str(self.i1.pk),
                "I1",
                [(str(self.d1.pk), "d1 edited", "5", "3"), ("tmp-d", "d2", "1.5", "1")],
            ),
            item_row(str(self.i2.pk), "I2"),
        ]
        reconcile_items(self.doc, rows)

        details = list(ItemDetail.objects.filter(item=self.i1).order_by("order"))
        self.assertEqual(len(details), 2)
        self.assertEqual(details[0].pk, self.d1.pk)
        self.assertEqual((details[0].detail, details[0].amount), ("d1 edited", 15))
        self.assertEqual(details[1].amount, 2)
        self.i1.refresh_from_db()
        self.assertEqual(self.i1.total, 17)

    def test_forged_amounts_are_overwritten(self):
        row = item_row(str(self.i1.pk), "I1", [(str(self.d1.pk), "d1", "5", "2")])
        row.values["total"] = 999
        row.children[0].values["amount"] = 999
        reconcile_items(self.doc, [row])
        self.d1.refresh_from_db()
        self.i1.refresh_from_db()
        self.assertEqual((self.d1.amount, self.i1.total), (10, 10))

    def test_empty_list_clears_collection(self):
        result = reconcile_items(self.doc, [])
        self.assertFalse(self.doc.items.exists())
        self.assertFalse(ItemDetail.objects.filter(pk=self.d1.pk).exists())
        self.assertEqual(set(result.deleted), {str(self.i1.pk), str(self.i2.pk)})

    def test_unchanged_rows_are_not_written(self):
        result = reconcile_remarks(self.doc, [])
        self.assertEqual(result.summary(), "updated=0 created=0 deleted=0")

        DocumentRemark.objects.create(document=self.doc, order=0, text="keep")
        remark = self.doc.remarks.get()
        result = reconcile_remarks(self.doc, [remark_row(str(remark.pk), "keep")])
        self.assertEqual(result.unchanged, [remark])
        self.assertEqual(result.updated, [])

    def test_rows_of_another_document_are_never_touched(self):
        other = Document.objects.create(kind="quotation", number="QTN-TEST-0002", bill_to="Globex")
        foreign = DocumentItem.objects.create(document=other, order=0, product_name="Theirs")

        reconcile_items(self.doc, [item_row(str(foreign.pk), "Mine")])

        foreign.refresh_from_db()
        self.assertEqual((foreign.document_id, foreign.product_name), (other.pk, "Theirs"))
        mine = self.doc.items.get()
        self.assertNotEqual(mine.pk, foreign.pk)
        self.assertEqual(mine.product_name, "Mine")
