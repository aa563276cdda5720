from django.contrib import admin

from .models import Document, DocumentItem, DocumentRemark, DocumentSignature, IdentifierCounter, ItemDetail


class DocumentItemInline(admin.TabularInline):
    model = DocumentItem
    extra = 0
    fields = ("order", "product_name", "total")
    readonly_fields = ("total",)
    show_change_link = True


class DocumentRemarkInline(admin.TabularInline):
    model = DocumentRemark
    extra = 0
    fields = ("order", "text", "is_completed")


class DocumentSignatureInline(admin.TabularInline):
    model = DocumentSignature
    extra = 0
    fields = ("order", "name", "position", "image_ref")


@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display = ("kind", "number", "bill_to", "project_name", "status", "total_amount", "updated_at", "deleted_at")
    list_filter = ("kind", "status")
    search_fields = ("number", "bill_to", "project_name", "company_name")
    readonly_fields = ("id", "number", "total_amount", "revision", "created_at", "updated_at")
    inlines = [DocumentItemInline, DocumentRemarkInline, DocumentSignatureInline]

    def get_queryset(self, request):
        return Document.all_objects.all()


class ItemDetailInline(admin.TabularInline):
    model = ItemDetail
    extra = 0
    fields = ("order", "detail", "unit_price", "qty", "amount")
    readonly_fields = ("amount",)


@admin.register(DocumentItem)
class DocumentItemAdmin(admin.ModelAdmin):
    list_display = ("document", "order", "product_name", "total")
    search_fields = ("product_name", "document__number")
    readonly_fields = ("id", "total")
    inlines = [ItemDetailInline]


@admin.register(IdentifierCounter)
class IdentifierCounterAdmin(admin.ModelAdmin):
    list_display = ("kind", "year", "last_value")
    list_filter = ("kind",)
    readonly_fields = ("last_value",)
