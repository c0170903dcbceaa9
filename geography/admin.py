from django.contrib import admin

from core.admin import StampedModelAdmin

from .models import City, Country


@admin.register(Country)
class CountryAdmin(StampedModelAdmin):
    list_display = ("id", "name", "code", "status", "created_at")
    list_filter = ("status",)
    search_fields = ("name", "code")


@admin.register(City)
class CityAdmin(StampedModelAdmin):
    list_display = ("id", "name", "state_province", "country", "status", "population")
    list_filter = ("status", "country")
    search_fields = ("name", "state_province", "country__name")
    list_select_related = ("country",)
