from django.contrib import admin
from .models import Reservation, Detail, ReservationResource, Status


class DetailInline(admin.StackedInline):
    model = Detail
    extra = 0


class ReservationResourceInline(admin.TabularInline):
    model = ReservationResource
    extra = 0
    fields = ['resource_id', 'quantity', 'price', 'is_deleted']


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = ['code', 'organization_id', 'status', 'start_date', 'end_date', 'total_amount', 'source', 'is_active', 'is_deleted']
    list_filter = ['status', 'source', 'is_active', 'is_deleted']
    search_fields = ['code', 'detail__name', 'detail__email']
    inlines = [DetailInline, ReservationResourceInline]

    def get_queryset(self, request):
        return Reservation.all_objects.select_related('status')


@admin.register(Status)
class StatusAdmin(admin.ModelAdmin):
    list_display = ['name', 'description', 'is_active', 'is_deleted', 'created_at']
    search_fields = ['name', 'description']
