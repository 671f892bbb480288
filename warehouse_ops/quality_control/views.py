from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from core.exceptions import ValidationException
from users.permissions import HasResourcePermission
from .serializers import (
    CompleteInspectionSerializer,
    CreateInspectionSerializer,
    InspectionResultSerializer,
    QualityInspectionSerializer,
)
from .services import QualityControlService


class InspectionViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    Quality inspections. Stock and packing staff open and run them;
    supervisors record the outcome.
    """

    permission_classes = [HasResourcePermission]
    policy_resource = "quality_control"
    lookup_field = "inspection_id"
    serializer_class = QualityInspectionSerializer
    service_class = QualityControlService

    def get_service(self):
        return self.service_class()

    def get_queryset(self):
        params = self.request.query_params
        inspector = params.get("inspector")
        if inspector and not inspector.isdigit():
            raise ValidationException("inspector must be a user id", {"inspector": inspector})
        return self.get_service().get_inspections(
            status=params.get("status"),
            inspection_type=params.get("type"),
            reference_type=params.get("reference_type"),
            reference_id=params.get("reference_id"),
            sku=params.get("sku"),
            inspector=inspector,
        )

    def get_object(self):
        return self.get_service().get_inspection(self.kwargs["inspection_id"])

    def create(self, request, *args, **kwargs):
        serializer = CreateInspectionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        inspection = self.get_service().create_inspection(serializer.validated_data, request.user)
        return Response(QualityInspectionSerializer(inspection).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def start(self, request, inspection_id=None):
        inspection = self.get_service().start_inspection(inspection_id, request.user)
        return Response(QualityInspectionSerializer(inspection).data)

    @action(detail=True, methods=["post"])
    def complete(self, request, inspection_id=None):
        serializer = CompleteInspectionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        inspection = self.get_service().complete_inspection(inspection_id, serializer.validated_data, request.user)
        return Response(QualityInspectionSerializer(inspection).data)

    @action(detail=True, methods=["get"])
    def results(self, request, inspection_id=None):
        results = self.get_service().get_results(inspection_id)
        return Response(InspectionResultSerializer(results, many=True).data)

    @results.mapping.post
    def record_result(self, request, inspection_id=None):
        serializer = InspectionResultSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.get_service().record_result(inspection_id, serializer.validated_data, request.user)
        return Response(InspectionResultSerializer(result).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"])
    def summary(self, request):
        return Response(self.get_service().get_summary())
