from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from console import listings
from console.api.mixins import AuditedWriteMixin, ListingViewSetMixin
from console.models import SUPPORTED_LOCALES, Translation
from console.schema import (
    COMMON_ERRORS,
    CSV_RESPONSE,
    ERROR_RESPONSE,
    LISTING_PARAMS,
    listing_response,
)
from console.serializers import TranslationSerializer
from console.services.translations import delete_translation, progress_for, translation_stats
from core.exceptions import ValidationError

_FILTER_PARAMS = [
    OpenApiParameter("locale", str, required=False),
    OpenApiParameter("group", str, required=False),
    OpenApiParameter("namespace", str, required=False),
]


@extend_schema_view(
    list=extend_schema(
        tags=["Translations"],
        description=(
            "List translations. `status` accepts active, inactive, needs_review "
            "(empty or placeholder values) and missing (empty values)."
        ),
        parameters=LISTING_PARAMS + _FILTER_PARAMS,
        responses={200: listing_response("Translation", TranslationSerializer), **COMMON_ERRORS},
    ),
    retrieve=extend_schema(tags=["Translations"], description="Retrieve a translation."),
    create=extend_schema(tags=["Translations"], description="Create a translation."),
    update=extend_schema(tags=["Translations"], description="Update a translation."),
    partial_update=extend_schema(tags=["Translations"], description="Partially update a translation."),
    destroy=extend_schema(
        tags=["Translations"],
        description="Delete a translation. System translations cannot be deleted.",
        responses={204: None, 403: ERROR_RESPONSE},
    ),
    export=extend_schema(tags=["Translations"], description="Export translations as CSV.",
                         responses={200: CSV_RESPONSE}),
)
class TranslationViewSet(AuditedWriteMixin, ListingViewSetMixin, viewsets.ModelViewSet):
    lookup_value_regex = r"\d+"
    queryset = Translation.objects.select_related("created_by")
    serializer_class = TranslationSerializer
    listing = listings.TRANSLATIONS

    def get_create_kwargs(self) -> dict:
        return {"created_by": self.request.user}

    def destroy(self, request, *args, **kwargs):
        delete_translation(self.get_object(), actor=request.user, log=self.activity())
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(tags=["Translations"], responses={200: OpenApiTypes.OBJECT})
    @action(detail=False, methods=["get"], url_path="stats")
    def stats(self, request):
        return Response(translation_stats(now=self.now))

    @extend_schema(
        tags=["Translations"],
        parameters=[OpenApiParameter("locale", str, required=False, description="Comma-separated locales.")],
        responses={200: OpenApiTypes.OBJECT},
    )
    @action(detail=False, methods=["get"], url_path="progress")
    def progress(self, request):
        raw = request.query_params.get("locale", "")
        locales = [part.strip() for part in raw.split(",") if part.strip()]
        unknown = [loc for loc in locales if loc not in SUPPORTED_LOCALES]
        if unknown:
            raise ValidationError(
                "Unsupported locale.", errors={"locale": [f"Unsupported locale: {', '.join(unknown)}."]}
            )
        return Response(progress_for(locales or None))
