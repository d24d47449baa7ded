from django.contrib import admin

from .models import Visit


@admin.register(Visit)
class VisitAdmin(admin.ModelAdmin):
    list_display = (
        'visit_date', 'visit_time', 'user', 'number_of_visitors', 'purpose', 'status',
        'confirmation_sent', 'reminder_sent'
    )
    list_filter = ('status', 'purpose', 'visit_date')
    search_fields = ('user__username', 'user__first_name', 'user__last_name', 'notes')
    date_hierarchy = 'visit_date'
    readonly_fields = ('created_at', 'updated_at')
