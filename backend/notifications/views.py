from django.utils.dateparse import parse_datetime
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import Notification
from .serializers import NotificationSerializer

PAGE_SIZE = 20


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def notification_list(request):
    """
    GET: current user's notifications, newest first.
        ?unread=1 to only list unread ones, ?before=<iso datetime> to page back.
    DELETE: clear the whole history.
    """
    qs = Notification.objects.filter(user=request.user)

    if request.method == 'DELETE':
        qs.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    unread_count = qs.filter(read=False).count()
    if request.query_params.get('unread') in ('1', 'true'):
        qs = qs.filter(read=False)
    before = parse_datetime(request.query_params.get('before', ''))
    if before:
        qs = qs.filter(created_at__lt=before)

    page = list(qs.order_by('-created_at')[:PAGE_SIZE + 1])
    return Response({
        'results': NotificationSerializer(page[:PAGE_SIZE], many=True).data,
        'unread_count': unread_count,
        'has_more': len(page) > PAGE_SIZE,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def mark_read(request, notification_id):
    updated = Notification.objects.filter(id=notification_id, user=request.user).update(read=True)
    if not updated:
        return Response({'error': 'Notification not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response({'id': str(notification_id), 'read': True})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def mark_all_read(request):
    updated = Notification.objects.filter(user=request.user, read=False).update(read=True)
    return Response({'updated': updated})


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def delete_notification(request, notification_id):
    deleted, _ = Notification.objects.filter(id=notification_id, user=request.user).delete()
    if not deleted:
        return Response({'error': 'Notification not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(status=status.HTTP_204_NO_CONTENT)
