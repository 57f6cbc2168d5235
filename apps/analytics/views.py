from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework.views import APIView
from rest_framework.response import Response

from apps.core.enums import Roles
from apps.core.exceptions import NotFoundError
from apps.core.permissions import HasAllRoles
from apps.core.utility import parse_int as _parse_int
from apps.responses.models import SurveyResponse
from apps.surveys.models import ParticipantType, Survey
from apps.surveys.services import get_active_survey

from .aggregation import summarize


class SummaryView(APIView):
    """
    GET: Aggregated metrics over completed responses.

    Query params:
      - participant_type: delegate | exhibitor | all (default)
      - response_id: summarize a single response (text answers shown verbatim)
      - survey_id: survey to summarize (default: the active survey)
    Response:
      { participant_type, response_count, numeric: [...], rating_groups: [...], text: [...] }
    """
    permission_classes = [HasAllRoles]
    required_roles = [Roles.VIEWER.value]

    def get(self, request):
        response_id = _parse_int(request.query_params.get("response_id"), 0)
        if response_id > 0:
            response = SurveyResponse.objects.select_related("survey").filter(pk=response_id).first()
            if response is None:
                raise NotFoundError("Response not found")
            summary = summarize(
                response.survey.definition,
                [response.responses],
                participant_type=response.participant_type,
                single_view=True,
            )
            return Response(summary)

        ptype = (request.query_params.get("participant_type") or "").strip()
        if ptype not in ParticipantType.values:
            ptype = None

        survey_id = _parse_int(request.query_params.get("survey_id"), 0)
        survey = get_object_or_404(Survey, pk=survey_id) if survey_id > 0 else get_active_survey()

        qs = SurveyResponse.objects.filter(survey=survey).order_by("completed_at", "id")
        if ptype:
            qs = qs.filter(participant_type=ptype)
        documents = list(qs.values_list("responses", flat=True))

        return Response(summarize(survey.definition, documents, participant_type=ptype))
