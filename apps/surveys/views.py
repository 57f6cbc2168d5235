from __future__ import annotations

from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.enums import Roles
from apps.core.permissions import HasAllRoles
from apps.core.serializer import paginate
from apps.core.utility import parse_int as _parse_int

from .export import export_invitations_csv
from .models import Survey, SurveyStatus
from .serializers import SurveyListSerializer, DistributionRowSerializer, SendInvitationsSerializer
from .services import distribution_list, get_active_survey, send_batch
from .tasks import send_invitations_task


class SurveyListView(APIView):
    """
    GET: Paginated list of surveys, optionally filtered by `status`.
         Query params: page (default 1), page_size (default 10, max 100)
    """
    permission_classes = [HasAllRoles]
    required_roles = [Roles.VIEWER.value]

    def get(self, request):
        qs = Survey.objects.order_by("id")

        status_param = (request.query_params.get("status") or "").strip()
        if status_param in dict(SurveyStatus.choices):
            qs = qs.filter(status=status_param)

        return Response(paginate(qs, request.query_params, lambda rows: SurveyListSerializer(rows, many=True).data))


class InvitationListView(APIView):
    """
    GET: Distribution list: tagged contacts with the opened/responded status of
         their invitation for the active survey.
    """
    permission_classes = [HasAllRoles]
    required_roles = [Roles.VIEWER.value]

    def get(self, request):
        rows = distribution_list()
        return Response({"count": len(rows), "results": DistributionRowSerializer(rows, many=True).data})


class InvitationSendView(APIView):
    """
    POST: Send (or re-send) invitations to a list of contacts.
          { "contact_ids": [...], "subject": "...", "message": "...", "queue": false }
          Returns {success, failed, errors}; with "queue": true the batch is handed
          to Celery and 202 is returned.
    """
    permission_classes = [HasAllRoles]
    required_roles = [Roles.EDITOR.value]

    def post(self, request):
        ser = SendInvitationsSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        contact_ids = list(data["contact_ids"])
        subject = data.get("subject") or None
        message = data.get("message") or None

        if data.get("queue"):
            # Fail fast instead of queueing a batch that cannot run
            get_active_survey()
            task = send_invitations_task.delay(contact_ids, subject, message)
            return Response({"queued": True, "task_id": task.id, "count": len(contact_ids)}, status=status.HTTP_202_ACCEPTED)

        result = send_batch(contact_ids, subject=subject, message=message)
        return Response(result.as_dict(), status=status.HTTP_200_OK)


class InvitationExportView(APIView):
    """
    GET: CSV export of the invitations of a survey (`survey_id`, default: the active survey).
    """
    permission_classes = [HasAllRoles]
    required_roles = [Roles.VIEWER.value]

    def get(self, request):
        survey_id = _parse_int(request.query_params.get("survey_id"), 0)
        survey = get_object_or_404(Survey, pk=survey_id) if survey_id > 0 else get_active_survey()

        filename = f"invitations-{survey.code}-{timezone.now().date().isoformat()}.csv"
        resp = HttpResponse(export_invitations_csv(survey), content_type="text/csv; charset=utf-8")
        resp["Content-Disposition"] = f'attachment; filename="{filename}"'
        return resp
