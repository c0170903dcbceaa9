from __future__ import annotations

"""
Organization invitation endpoints.

Nested under an organization:
    organizations/{organization_pk}/invitations/          list, create
    organizations/{organization_pk}/invitations/bulk/     up to 50 at once
    organizations/{organization_pk}/invitations/stats/
    organizations/{organization_pk}/invitations/export/

Flat, by invitation id:
    invitations/{id}/resend/
    invitations/{id}/cancel/
    invitations/cleanup/    marks overdue pending invitations expired
"""

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from console import listings
from console.api.mixins import ConsoleViewSetMixin, ListingViewSetMixin
from console.models import ActivityAction, Organization, OrganizationInvitation
from console.schema import (
    COMMON_ERRORS,
    CONFLICT_RESPONSE,
    CSV_RESPONSE,
    DATE_RANGE_PARAMS,
    LISTING_PARAMS,
    listing_response,
)
from console.serializers import (
    InvitationBulkSerializer,
    InvitationCreateSerializer,
    OrganizationInvitationSerializer,
)
from console.services import invitations
from core.exceptions import NotFoundError, store_guard


@extend_schema_view(
    list=extend_schema(
        tags=["Invitations"],
        description="List an organization's invitations (status, role, email search).",
        parameters=LISTING_PARAMS + DATE_RANGE_PARAMS,
        responses={200: listing_response("Invitation", OrganizationInvitationSerializer), **COMMON_ERRORS},
    ),
    export=extend_schema(
        tags=["Invitations"],
        description="Export an organization's invitations as CSV.",
        responses={200: CSV_RESPONSE},
    ),
)
class OrganizationInvitationViewSet(ListingViewSetMixin, viewsets.GenericViewSet):
    serializer_class = OrganizationInvitationSerializer
    throttle_scopes = {"export": "exports", "bulk": "bulk-ops"}

    def get_organization(self) -> Organization:
        if getattr(self, "_organization", None) is None:
            pk = self.kwargs.get("organization_pk")
            with store_guard("organization.get", pk=pk):
                organization = Organization.objects.filter(pk=pk).first()
            if organization is None:
                raise NotFoundError("Organization not found.")
            self._organization = organization
        return self._organization

    def get_queryset(self):
        return OrganizationInvitation.objects.filter(organization=self.get_organization())

    def get_listing(self):
        return listings.invitation_listing(self.get_organization())

    @extend_schema(
        tags=["Invitations"],
        request=InvitationCreateSerializer,
        responses={201: OrganizationInvitationSerializer, 409: CONFLICT_RESPONSE, **COMMON_ERRORS},
    )
    def create(self, request, *args, **kwargs):
        payload = InvitationCreateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        invitation = invitations.send_invitation(
            self.get_organization(),
            payload.validated_data["email"],
            payload.validated_data["role"],
            message=payload.validated_data.get("message", ""),
            actor=request.user,
            now=self.now,
            log=self.activity(),
        )
        return Response(self.get_serializer(invitation).data, status=status.HTTP_201_CREATED)

    @extend_schema(tags=["Invitations"], request=InvitationBulkSerializer, responses={200: OpenApiTypes.OBJECT})
    @action(detail=False, methods=["post"], url_path="bulk")
    def bulk(self, request, *args, **kwargs):
        payload = InvitationBulkSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        requests = [
            invitations.InvitationRequest(email=item["email"], role=item["role"])
            for item in payload.validated_data["invitations"]
        ]
        result = invitations.bulk_send(
            self.get_organization(),
            requests,
            message=payload.validated_data.get("message", ""),
            actor=request.user,
            now=self.now,
            log=self.activity(),
        )
        return Response(result)

    @extend_schema(tags=["Invitations"], responses={200: OpenApiTypes.OBJECT})
    @action(detail=False, methods=["get"], url_path="stats")
    def stats(self, request, *args, **kwargs):
        return Response(invitations.invitation_stats(self.get_organization(), now=self.now))


class InvitationViewSet(ConsoleViewSetMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    lookup_value_regex = r"\d+"
    queryset = OrganizationInvitation.objects.select_related("organization", "invited_by")
    serializer_class = OrganizationInvitationSerializer

    @extend_schema(
        tags=["Invitations"],
        request=None,
        responses={200: OrganizationInvitationSerializer, 409: CONFLICT_RESPONSE},
    )
    @action(detail=True, methods=["post"], url_path="resend")
    def resend(self, request, pk=None):
        invitation = invitations.resend(self.get_object(), actor=request.user, now=self.now, log=self.activity())
        return Response(self.get_serializer(invitation).data)

    @extend_schema(
        tags=["Invitations"],
        request=None,
        responses={200: OrganizationInvitationSerializer, 409: CONFLICT_RESPONSE},
    )
    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, pk=None):
        invitation = invitations.cancel(self.get_object(), actor=request.user, now=self.now, log=self.activity())
        return Response(self.get_serializer(invitation).data)

    @extend_schema(tags=["Invitations"], request=None, responses={200: OpenApiTypes.OBJECT})
    @action(detail=False, methods=["post"], url_path="cleanup")
    def cleanup(self, request):
        expired = invitations.expire_overdue(now=self.now)
        self.activity().record(
            request.user, ActivityAction.CLEANUP, {"resource": "organization_invitations", "expired": expired}
        )
        return Response({"detail": f"{expired} invitations marked as expired.", "expired": expired})
