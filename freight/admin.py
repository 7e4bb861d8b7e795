"""
Django admin configuration for freight operations.
"""

from django.contrib import admin
from .models import (
    Shipment, MerchandiseLine, Associate, Vehicle, Dispatch, DispatchItem,
    Settlement, SettlementItem, AuditLog
)


class MerchandiseLineInline(admin.TabularInline):
    model = MerchandiseLine
    extra = 0


@admin.register(Shipment)
class ShipmentAdmin(admin.ModelAdmin):
    list_display = ['invoice_number', 'origin_office_id', 'destination_office_id', 'master_status',
                    'payment_status', 'shipping_status', 'vehicle', 'total', 'created_at']
    list_filter = ['master_status', 'payment_status', 'shipping_status', 'payment_type']
    search_fields = ['invoice_number', 'sender_name', 'receiver_name']
    readonly_fields = ['id', 'invoice_number', 'chargeable_weight', 'freight', 'insurance_cost',
                       'handling', 'discount', 'subtotal', 'postal_contribution', 'vat',
                       'foreign_currency_surcharge', 'total', 'created_at', 'updated_at']
    inlines = [MerchandiseLineInline]


@admin.register(Associate)
class AssociateAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'is_active']
    list_filter = ['is_active']
    search_fields = ['code', 'name']


@admin.register(Vehicle)
class VehicleAdmin(admin.ModelAdmin):
    list_display = ['plate', 'associate', 'cargo_capacity_kg', 'status', 'current_office_id']
    list_filter = ['status']
    search_fields = ['plate', 'associate__name']


class DispatchItemInline(admin.TabularInline):
    model = DispatchItem
    extra = 0
    readonly_fields = ['shipment', 'sequence_number']


@admin.register(Dispatch)
class DispatchAdmin(admin.ModelAdmin):
    list_display = ['dispatch_number', 'vehicle', 'origin_office_id', 'destination_office_id', 'status', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['dispatch_number', 'vehicle__plate']
    readonly_fields = ['id', 'dispatch_number', 'status', 'created_at', 'received_at', 'voided_at']
    inlines = [DispatchItemInline]


class SettlementItemInline(admin.TabularInline):
    model = SettlementItem
    extra = 0
    readonly_fields = ['shipment']


@admin.register(Settlement)
class SettlementAdmin(admin.ModelAdmin):
    list_display = ['settlement_number', 'associate', 'vehicle', 'amount_receivable',
                    'discrepancy_count', 'created_at']
    search_fields = ['settlement_number', 'associate__name', 'vehicle__plate']
    readonly_fields = ['id', 'settlement_number', 'amount_receivable', 'total_at_destination',
                       'cooperative_share', 'associate_share', 'discrepancy_count', 'breakdown',
                       'created_at', 'recomputed_at']
    inlines = [SettlementItemInline]


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['entity_type', 'entity_id', 'action', 'user', 'timestamp']
    list_filter = ['entity_type', 'action', 'timestamp']
    search_fields = ['entity_id', 'user__username']
    readonly_fields = ['id', 'timestamp']
