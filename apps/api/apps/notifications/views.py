"""
Notification views. Users only ever see their own notifications.
"""
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.notifications import services
from apps.notifications.models import Notification
from apps.notifications.serializers import NotificationSerializer


class NotificationViewSet(viewsets.ReadOnlyModelViewSet):
    """
    - GET /api/v1/notifications/?unread=true
    - POST /api/v1/notifications/{id}/read/
    - POST /api/v1/notifications/read-all/
    - GET /api/v1/notifications/unread-count/
    """
    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        queryset = Notification.objects.filter(recipient=self.request.user)
        if self.request.query_params.get('unread', 'false').lower() == 'true':
            queryset = queryset.filter(read=False)
        return queryset.order_by('-created_at')

    @action(detail=True, methods=['post'])
    def read(self, request, pk=None):
        if not services.mark_as_read(pk, request.user):
            return Response(
                {'error': 'notification not found', 'error_type': 'not_found'},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response({'read': True})

    @action(detail=False, methods=['post'], url_path='read-all')
    def read_all(self, request):
        return Response({'updated': services.mark_all_as_read(request.user)})

    @action(detail=False, methods=['get'], url_path='unread-count')
    def unread_count(self, request):
        return Response({'unread': services.unread_count(request.user)})
