from datetime import timedelta

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.utils import timezone

from drivers.models import Driver
from drivers.serializers import DriverBasicSerializer
from .models import Load, DispatchBlast, BlastResponse
from .serializers import (
    LoadSerializer,
    LoadStatusEventSerializer,
    GeofenceEventSerializer,
    DispatchBlastSerializer,
    DriverOfferSerializer,
    CreateBlastSerializer,
    BlastCancelSerializer,
    BlastRespondSerializer,
    LoadStatusUpdateSerializer,
    SuggestionQuerySerializer,
)

# Import from services layer
from services.dispatch import (
    create_blast,
    cancel_blast,
    respond,
    list_active_blasts_for_driver,
    get_driver_suggestion,
    InvalidRadiusError,
    InvalidExpiryError,
    MissingCoordinatesError,
    LoadAlreadyBlastedError,
    LoadNotBlastableError,
    BlastNotFoundError,
    OfferNotFoundError,
)
from services.load_management import update_load_status, LoadNotFoundError

# Statuses a driver may report on their own load
DRIVER_STATUS_TARGETS = ('in_progress', 'arrived_pickup', 'in_transit', 'arrived_delivery', 'delivered')


def require_dispatcher(user):
    if user.role != 'dispatcher':
        return Response(
            {'error': 'Only dispatchers can perform this action'},
            status=status.HTTP_403_FORBIDDEN
        )
    return None


def require_driver(user):
    if user.role != 'driver':
        return None, Response(
            {'error': 'Only drivers can perform this action'},
            status=status.HTTP_403_FORBIDDEN
        )
    try:
        return user.driver, None
    except Driver.DoesNotExist:
        return None, Response({'error': 'Driver profile not found'}, status=status.HTTP_404_NOT_FOUND)


def _blast_result_payload(result):
    return {
        'success': result.success,
        'outcome': result.outcome,
        'message': result.message,
        'error_code': result.error_code,
        'blast_id': result.blast.id if result.blast else None,
        'blast_status': result.blast.status if result.blast else None,
    }


# ==================== Dispatcher Blast APIs ====================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def blast_load(request, load_id):
    """Offer a pending load to every eligible driver (first to accept wins)"""
    denied = require_dispatcher(request.user)
    if denied:
        return denied

    serializer = CreateBlastSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    expires_at = data.get('expires_at')
    if expires_at is None and data.get('expires_in_minutes'):
        expires_at = timezone.now() + timedelta(minutes=data['expires_in_minutes'])

    try:
        blast = create_blast(
            load_id,
            radius_miles=data.get('radius_miles'),
            expires_at=expires_at,
            message=data.get('message'),
            created_by=request.user,
            priority=data['priority'],
            hub_agnostic=data['hub_agnostic'],
        )
    except LoadNotFoundError:
        return Response({'error': 'Load not found'}, status=status.HTTP_404_NOT_FOUND)
    except (InvalidRadiusError, InvalidExpiryError, MissingCoordinatesError) as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except (LoadAlreadyBlastedError, LoadNotBlastableError) as e:
        return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

    return Response({
        'message': f'Load offered to {blast.drivers_notified} driver(s)',
        'blast': DispatchBlastSerializer(blast).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel_blast_view(request, blast_id):
    """Withdraw a sent blast"""
    denied = require_dispatcher(request.user)
    if denied:
        return denied

    serializer = BlastCancelSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        result = cancel_blast(
            blast_id,
            reason=serializer.validated_data.get('reason', ''),
            actor=request.user.actor_label,
        )
    except BlastNotFoundError:
        return Response({'error': 'Blast not found'}, status=status.HTTP_404_NOT_FOUND)

    code = status.HTTP_200_OK if result.success else status.HTTP_409_CONFLICT
    return Response(_blast_result_payload(result), status=code)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def blast_detail(request, blast_id):
    denied = require_dispatcher(request.user)
    if denied:
        return denied

    try:
        blast = DispatchBlast.objects.prefetch_related('responses__driver__user').get(id=blast_id)
    except DispatchBlast.DoesNotExist:
        return Response({'error': 'Blast not found'}, status=status.HTTP_404_NOT_FOUND)

    return Response(DispatchBlastSerializer(blast).data)


# ==================== Driver Blast APIs ====================

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def active_blasts(request):
    """Offers the driver can still act on (polling fallback for push)"""
    driver, denied = require_driver(request.user)
    if denied:
        return denied

    blasts = list_active_blasts_for_driver(driver)
    responses = BlastResponse.objects.filter(driver=driver, blast__in=blasts)
    serializer = DriverOfferSerializer(
        blasts,
        many=True,
        context={'request': request, 'responses_by_blast': {r.blast_id: r for r in responses}},
    )
    return Response({'count': len(blasts), 'blasts': serializer.data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def respond_to_blast(request, blast_id):
    """View, decline or accept a blast"""
    driver, denied = require_driver(request.user)
    if denied:
        return denied

    serializer = BlastRespondSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        result = respond(
            blast_id,
            driver,
            serializer.validated_data['action'],
            serializer.validated_data.get('reason', ''),
        )
    except BlastNotFoundError:
        return Response({'error': 'Blast not found'}, status=status.HTTP_404_NOT_FOUND)
    except OfferNotFoundError:
        return Response({'error': 'This load was not offered to you'}, status=status.HTTP_404_NOT_FOUND)

    # Losing a race is a normal answer, not an error
    return Response(_blast_result_payload(result), status=status.HTTP_200_OK)


# ==================== Load Status APIs ====================

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def load_detail(request, load_id):
    try:
        load = Load.objects.select_related('driver__user').get(id=load_id)
    except Load.DoesNotExist:
        return Response({'error': 'Load not found'}, status=status.HTTP_404_NOT_FOUND)

    if request.user.role == 'driver' and (load.driver is None or load.driver.user_id != request.user.id):
        return Response({'error': 'Not your load'}, status=status.HTTP_403_FORBIDDEN)

    return Response(LoadSerializer(load, context={'request': request}).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def update_status(request, load_id):
    """
    Manual status change by a dispatcher or the load's driver.

    Drivers may only move their own load forward through pickup and
    delivery, and must send coordinates when reporting arrival or delivery.
    Dispatchers assigning a busy driver get driver_busy unless they send force.
    """
    serializer = LoadStatusUpdateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    assignee = None
    if request.user.role == 'driver':
        driver, denied = require_driver(request.user)
        if denied:
            return denied
        if data['status'] not in DRIVER_STATUS_TARGETS:
            return Response(
                {'error': f"Drivers cannot move a load to {data['status']}"},
                status=status.HTTP_403_FORBIDDEN,
            )
        if not Load.objects.filter(id=load_id, driver=driver).exists():
            return Response({'error': 'This load is not assigned to you'}, status=status.HTTP_403_FORBIDDEN)
    elif request.user.role == 'dispatcher':
        if data.get('driver_id'):
            try:
                assignee = Driver.objects.get(id=data['driver_id'])
            except Driver.DoesNotExist:
                return Response({'error': 'Driver not found'}, status=status.HTTP_404_NOT_FOUND)
    else:
        return Response({'error': 'Not allowed'}, status=status.HTTP_403_FORBIDDEN)

    try:
        result = update_load_status(
            load_id,
            data['status'],
            request.user.actor_label,
            reason=data.get('reason'),
            latitude=data.get('latitude'),
            longitude=data.get('longitude'),
            driver=assignee,
            force=data.get('force', False),
        )
    except LoadNotFoundError:
        return Response({'error': 'Load not found'}, status=status.HTTP_404_NOT_FOUND)

    if not result.success:
        code = status.HTTP_400_BAD_REQUEST if result.error_code in ('invalid_status', 'driver_required') \
            else status.HTTP_409_CONFLICT
        return Response({
            'success': False,
            'error': result.message,
            'error_code': result.error_code,
            'status': result.load.status if result.load else None,
        }, status=code)

    return Response({
        'success': True,
        'message': result.message,
        'changed': result.change.changed,
        'load': LoadSerializer(result.load, context={'request': request}).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def load_events(request, load_id):
    """Audit history: status changes and geofence detections"""
    denied = require_dispatcher(request.user)
    if denied:
        return denied

    try:
        load = Load.objects.get(id=load_id)
    except Load.DoesNotExist:
        return Response({'error': 'Load not found'}, status=status.HTTP_404_NOT_FOUND)

    return Response({
        'load_id': load.id,
        'status': load.status,
        'status_events': LoadStatusEventSerializer(load.status_events.all(), many=True).data,
        'geofence_events': GeofenceEventSerializer(load.geofence_events.all(), many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def driver_suggestions(request, load_id):
    """Ranked drivers for manually assigning a load"""
    denied = require_dispatcher(request.user)
    if denied:
        return denied

    query = SuggestionQuerySerializer(data=request.query_params)
    query.is_valid(raise_exception=True)
    params = query.validated_data

    try:
        suggestions = get_driver_suggestion(
            load_id,
            pickup_lat=params.get('pickup_lat'),
            pickup_lng=params.get('pickup_lng'),
            cutoff_time=params.get('cutoff_time'),
        )
    except LoadNotFoundError:
        return Response({'error': 'Load not found'}, status=status.HTTP_404_NOT_FOUND)

    return Response({
        'load_id': load_id,
        'count': len(suggestions),
        'suggestions': [
            {
                'driver': DriverBasicSerializer(s.driver).data,
                'score': s.score,
                'distance_miles': s.distance_miles,
                'eta_minutes': s.eta_minutes,
                'loads_today': s.loads_today,
                'meets_cutoff': s.meets_cutoff,
                'reasoning': s.reasoning,
            }
            for s in suggestions
        ],
    })
