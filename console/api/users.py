from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.models import User
from console import listings
from console.api.mixins import AuditedWriteMixin, ListingViewSetMixin
from console.schema import (
    COMMON_ERRORS,
    CONFLICT_RESPONSE,
    CSV_RESPONSE,
    DATE_RANGE_PARAMS,
    LISTING_PARAMS,
    listing_response,
)
from console.serializers import UserSearchSerializer, UserSerializer
from console.services.users import delete_user, search_users, toggle_user_status


@extend_schema_view(
    list=extend_schema(
        tags=["Users"],
        description="List users. Search covers first name, last name and email.",
        parameters=LISTING_PARAMS + DATE_RANGE_PARAMS + [
            OpenApiParameter("country_id", int, required=False),
            OpenApiParameter("city_id", int, required=False),
        ],
        responses={200: listing_response("User", UserSerializer), **COMMON_ERRORS},
    ),
    retrieve=extend_schema(tags=["Users"], description="Retrieve a user."),
    create=extend_schema(tags=["Users"], description="Create a user.", responses={201: UserSerializer, **COMMON_ERRORS}),
    update=extend_schema(tags=["Users"], description="Update a user."),
    partial_update=extend_schema(tags=["Users"], description="Partially update a user."),
    destroy=extend_schema(
        tags=["Users"],
        description="Delete a user. Deleting your own account is refused.",
        responses={204: None, 409: CONFLICT_RESPONSE},
    ),
    export=extend_schema(tags=["Users"], description="Export users as CSV.", responses={200: CSV_RESPONSE}),
)
class UserViewSet(AuditedWriteMixin, ListingViewSetMixin, viewsets.ModelViewSet):
    lookup_value_regex = r"\d+"
    queryset = User.objects.select_related("country", "city")
    serializer_class = UserSerializer
    listing = listings.USERS

    def destroy(self, request, *args, **kwargs):
        delete_user(self.get_object(), actor=request.user, log=self.activity())
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(tags=["Users"], request=None, responses={200: UserSerializer, 409: CONFLICT_RESPONSE})
    @action(detail=True, methods=["post"], url_path="toggle-status")
    def toggle_status(self, request, pk=None):
        user = toggle_user_status(self.get_object(), actor=request.user, log=self.activity())
        return Response(self.get_serializer(user).data)

    @extend_schema(
        tags=["Users"],
        parameters=[OpenApiParameter("q", str, required=True, description="Name or email fragment.")],
        responses={200: UserSearchSerializer(many=True)},
    )
    @action(detail=False, methods=["get"], url_path="search")
    def search(self, request):
        users = search_users(request.query_params.get("q", ""))
        return Response(UserSearchSerializer(users, many=True).data)
