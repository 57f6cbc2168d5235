from rest_framework.views import APIView
from rest_framework.response import Response
from apps.core.permissions import HasAllRoles
from .serializers import PrincipalSerializer


class MeView(APIView):
    """Return the authenticated principal with its role names."""
    permission_classes = [HasAllRoles]

    def get(self, request):
        return Response(PrincipalSerializer(request.user).data)
