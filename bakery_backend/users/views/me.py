from drf_spectacular.utils import extend_schema
from rest_framework import serializers
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from users.session import get_session_context

# ---------------------------
# SERIALIZER
# ---------------------------


class MeSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    email = serializers.EmailField()
    first_name = serializers.CharField()
    last_name = serializers.CharField()
    role = serializers.CharField()
    is_admin = serializers.BooleanField()


# ---------------------------
# VIEW
# ---------------------------


class MeView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = MeSerializer

    @extend_schema(
        responses={200: MeSerializer},
        description="Current session: profile plus resolved role",
    )
    def get(self, request):
        ctx = get_session_context(request)
        user = request.user

        return Response(
            {
                "id": ctx.user_id,
                "email": ctx.email,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "role": ctx.role,
                "is_admin": ctx.is_admin,
            }
        )
