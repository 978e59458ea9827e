"""Django admin configuration for orders.

Orders are written through django_orders.services only, so the order
admin is read-only.
"""

from django.contrib import admin

from .models import (
    CareSetting,
    Concept,
    ConceptClass,
    Drug,
    Order,
    OrderFrequency,
    OrderObservation,
    OrderType,
)


class OrderObservationInline(admin.TabularInline):
    """Inline for viewing observations recorded against an order."""

    model = OrderObservation
    extra = 0
    readonly_fields = ['concept', 'value_text', 'value_numeric', 'obs_datetime']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Admin for Order model (read-only)."""

    list_display = [
        'order_number',
        'action',
        'concept',
        'order_type',
        'care_setting',
        'start_date',
        'date_stopped',
        'auto_expire_date',
        'voided',
        'is_active',
    ]
    list_filter = ['action', 'kind', 'voided', 'order_type', 'care_setting']
    search_fields = ['order_number', 'patient_id', 'concept__name', 'concept__code']
    inlines = [OrderObservationInline]

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def is_active(self, obj):
        """Display active status."""
        return obj.is_active
    is_active.boolean = True
    is_active.short_description = 'Active'


@admin.register(OrderType)
class OrderTypeAdmin(admin.ModelAdmin):
    list_display = ['name', 'parent', 'retired']
    list_filter = ['retired']
    filter_horizontal = ['concept_classes']


@admin.register(CareSetting)
class CareSettingAdmin(admin.ModelAdmin):
    list_display = ['name', 'care_setting_type', 'retired']
    list_filter = ['care_setting_type', 'retired']


@admin.register(OrderFrequency)
class OrderFrequencyAdmin(admin.ModelAdmin):
    list_display = ['name', 'concept', 'frequency_per_day', 'retired']


@admin.register(Concept)
class ConceptAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'concept_class', 'retired']
    list_filter = ['concept_class', 'retired']
    search_fields = ['code', 'name']


admin.site.register(ConceptClass)
admin.site.register(Drug)
