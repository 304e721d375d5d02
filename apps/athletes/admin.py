"""
Django admin configuration for athletes app.
"""
from django.contrib import admin

from .models import Athlete


@admin.register(Athlete)
class AthleteAdmin(admin.ModelAdmin):
    list_display = ['last_name', 'first_name', 'date_of_birth', 'gender', 'category', 'coach']
    list_filter = ['category', 'gender']
    search_fields = ['first_name', 'last_name']
    raw_id_fields = ['coach']
    readonly_fields = ['age', 'category', 'created_at', 'updated_at']
