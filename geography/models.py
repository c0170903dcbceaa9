from django.db import models

from core.models import TimestampedModel


class GeoStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class Country(TimestampedModel):
    name = models.CharField(max_length=120)
    code = models.CharField(max_length=3, unique=True, help_text="ISO 3166 alpha-2 or alpha-3 code.")
    status = models.CharField(max_length=16, choices=GeoStatus.choices, default=GeoStatus.ACTIVE, db_index=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "countries"

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"


class City(TimestampedModel):
    name = models.CharField(max_length=120)
    country = models.ForeignKey(Country, on_delete=models.PROTECT, related_name="cities")
    state_province = models.CharField(max_length=120, blank=True, default="")
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    population = models.PositiveIntegerField(null=True, blank=True)
    timezone = models.CharField(max_length=64, blank=True, default="")
    status = models.CharField(max_length=16, choices=GeoStatus.choices, default=GeoStatus.ACTIVE, db_index=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "cities"

    def __str__(self) -> str:
        return f"{self.name}, {self.country.code}" if self.country_id else self.name
