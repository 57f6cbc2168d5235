from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status

from apps.core.enums import Roles
from apps.core.permissions import HasAllRoles
from apps.core.serializer import paginate

from .serializers import SurveyResponseSerializer
from .services import delete_response, list_responses


class ResponseListView(APIView):
    """
    GET: Paginated completed responses, newest first.
         Query params: participant_type (delegate|exhibitor|all), page, page_size
    """
    permission_classes = [HasAllRoles]
    required_roles = [Roles.VIEWER.value]

    def get(self, request):
        qs = list_responses((request.query_params.get("participant_type") or "").strip())
        return Response(paginate(qs, request.query_params, lambda rows: SurveyResponseSerializer(rows, many=True).data))


class ResponseDetailView(APIView):
    """
    DELETE: Remove a response and reopen the contact's invitation for that survey.
    """
    permission_classes = [HasAllRoles]
    required_roles = [Roles.EDITOR.value]

    def delete(self, request, response_id: int):
        reopened = delete_response(response_id)
        return Response({"deleted": response_id, "invitations_reopened": reopened}, status=status.HTTP_200_OK)
