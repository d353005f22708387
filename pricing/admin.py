from django.contrib import admin

from .models import MetalPrice


@admin.register(MetalPrice)
class MetalPriceAdmin(admin.ModelAdmin):
    list_display = ("metal", "purity", "price_per_gram", "source", "updated_at")
    list_filter = ("metal", "source")
    search_fields = ("metal", "purity")
    ordering = ("metal", "purity")
