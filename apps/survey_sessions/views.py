from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status

from apps.core.exceptions import ValidationError

from .serializers import AdvanceSerializer, SubmitSerializer
from .services import advance, resume, state_payload, submit


def _invalid(exc: ValidationError) -> Response:
    return Response({"detail": str(exc.detail), "missing": exc.missing}, status=status.HTTP_400_BAD_REQUEST)


class SessionDetailView(APIView):
    """
    GET: Resolve an invitation token into its session state.
         Terminal states: {"state": "unavailable" | "expired" | "already_responded"}
         Otherwise: {"state": "in_progress", "page", "answers", "pages", ...}
    """
    # Public: the token is the credential
    permission_classes = []

    def get(self, request, token: str):
        return Response(state_payload(resume(token)), status=status.HTTP_200_OK)


class SessionAdvanceView(APIView):
    """
    POST: Save the answers of `page` and move to the next page.
          { "page": 0, "answers": {...} }
    """
    permission_classes = []

    def post(self, request, token: str):
        ser = AdvanceSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            state = advance(token, ser.validated_data["page"], ser.validated_data["answers"])
        except ValidationError as e:
            return _invalid(e)
        return Response({"state": state.name, "page": state.page, "answers": state.answers}, status=status.HTTP_200_OK)


class SessionSubmitView(APIView):
    """
    POST: Submit the final page and complete the survey.
          { "answers": {...} }
    """
    permission_classes = []

    def post(self, request, token: str):
        ser = SubmitSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            result = submit(token, ser.validated_data["answers"])
        except ValidationError as e:
            return _invalid(e)
        return Response({"state": result.name, "response_id": result.response_id}, status=status.HTTP_201_CREATED)
