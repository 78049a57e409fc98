"""
Harvestman API ViewSets.
"""

from django.core.exceptions import ValidationError
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from harvestman.exceptions import HarvestError
from harvestman.models import Harvest, Preorder
from harvestman.services.matching import HarvestMatching

from .serializers import (
    HarvestSerializer,
    MatchResultSerializer,
    PreorderCancelSerializer,
    PreorderSerializer,
)

NOT_FOUND_CODES = {"HARVEST_NOT_FOUND", "PREORDER_NOT_FOUND"}
CONFLICT_CODES = {"CONCURRENT_MODIFICATION"}


def error_response(error: Exception) -> Response:
    """Map harvestman/Django errors to HTTP responses."""
    if isinstance(error, HarvestError):
        if error.code in NOT_FOUND_CODES:
            http_status = status.HTTP_404_NOT_FOUND
        elif error.code in CONFLICT_CODES:
            http_status = status.HTTP_409_CONFLICT
        elif error.code == "PERSISTENCE_FAILURE":
            http_status = status.HTTP_503_SERVICE_UNAVAILABLE
        else:
            http_status = status.HTTP_400_BAD_REQUEST
        return Response(
            {"error": str(error), **error.as_dict(), "retriable": error.retriable},
            status=http_status,
        )

    messages = getattr(error, "messages", None) or [str(error)]
    return Response({"error": " ".join(messages)}, status=status.HTTP_400_BAD_REQUEST)


class HarvestViewSet(viewsets.ModelViewSet):
    """
    ViewSet for Harvest.

    list: List all harvests
    create: Register a new harvest
    retrieve: Get a specific harvest by UUID
    update: Update a harvest
    destroy: Delete a harvest
    verify: Mark harvest as verified
    publish: Publish harvest (matching runs after commit)
    match: Run matching now and return the result
    """

    permission_classes = [IsAuthenticated]
    queryset = Harvest.objects.all()
    serializer_class = HarvestSerializer
    lookup_field = "uuid"

    def update(self, request, *args, **kwargs):
        harvest = self.get_object()
        if not harvest.can_be_modified:
            return error_response(
                ValidationError("Verified, published or allocated harvests cannot be edited.")
            )
        return super().update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        harvest = self.get_object()
        if not harvest.can_be_modified:
            return error_response(
                ValidationError("Verified, published or allocated harvests cannot be deleted.")
            )
        return super().destroy(request, *args, **kwargs)

    @action(detail=True, methods=["post"])
    def verify(self, request, uuid=None):
        """
        Mark harvest as verified.

        POST /api/harvestman/harvests/{uuid}/verify/
        """
        harvest = self.get_object()
        try:
            harvest.verify(user=request.user)
        except ValidationError as e:
            return error_response(e)
        return Response({"verified": True, "verified_at": harvest.verified_at})

    @action(detail=True, methods=["post"])
    def publish(self, request, uuid=None):
        """
        Publish the harvest.

        POST /api/harvestman/harvests/{uuid}/publish/
        """
        harvest = self.get_object()
        try:
            harvest.publish(user=request.user)
        except ValidationError as e:
            return error_response(e)
        return Response({"published": True, "published_at": harvest.published_at})

    @action(detail=True, methods=["post"])
    def match(self, request, uuid=None):
        """
        Run matching for this harvest.

        POST /api/harvestman/harvests/{uuid}/match/
        """
        harvest = self.get_object()
        try:
            result = HarvestMatching.run(harvest.pk)
        except HarvestError as e:
            return error_response(e)
        return Response(MatchResultSerializer(result).data)


class PreorderViewSet(viewsets.ModelViewSet):
    """
    ViewSet for Preorder.

    list: List preorders (filter with ?status=, ?sku=)
    create: Create a new preorder (always PENDING)
    retrieve: Get a specific preorder by UUID
    update: Update a preorder
    destroy: Delete a preorder
    cancel: Cancel the preorder
    ready: Mark a reserved preorder ready
    """

    permission_classes = [IsAuthenticated]
    queryset = Preorder.objects.select_related("harvest")
    serializer_class = PreorderSerializer
    lookup_field = "uuid"

    def get_queryset(self):
        qs = super().get_queryset()
        for param in ("status", "sku"):
            value = self.request.query_params.get(param)
            if value:
                qs = qs.filter(**{param: value})
        return qs

    @action(detail=True, methods=["post"])
    def cancel(self, request, uuid=None):
        """
        Cancel the preorder.

        POST /api/harvestman/preorders/{uuid}/cancel/
        {
            "reason": "Changed my mind"  // optional
        }
        """
        preorder = self.get_object()
        serializer = PreorderCancelSerializer(data=request.data)

        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            preorder.cancel(reason=serializer.validated_data["reason"], user=request.user)
        except ValidationError as e:
            return error_response(e)
        return Response({"status": preorder.status, "version": preorder.version})

    @action(detail=True, methods=["post"])
    def ready(self, request, uuid=None):
        """
        Mark a reserved preorder as ready.

        POST /api/harvestman/preorders/{uuid}/ready/
        """
        preorder = self.get_object()
        try:
            preorder.mark_ready(user=request.user)
        except ValidationError as e:
            return error_response(e)
        return Response({"status": preorder.status, "ready_at": preorder.ready_at})
