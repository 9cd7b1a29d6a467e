from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from drivers.models import Driver
from drivers.serializers import (
    DriverProfileSerializer,
    DriverStatusSerializer,
    LocationUpdateSerializer,
)
from loads.serializers import LoadSerializer, GeofenceEventSerializer

from drivers import services


# Utility: Ensure request.user is a driver
def require_driver(user):
    if user.role != "driver":
        return False, Response({"error": "Only drivers allowed"}, status=403)
    try:
        driver = user.driver
        return True, driver
    except Driver.DoesNotExist:
        return False, Response({"error": "Driver profile not found"}, status=404)


class DriverProfileView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, driver = require_driver(request.user)
        if ok is False:
            return driver  # Response object

        serializer = DriverProfileSerializer(driver, context={"request": request})
        return Response(serializer.data)

    def post(self, request):
        ok, driver = require_driver(request.user)
        if ok is False:
            return driver

        serializer = DriverProfileSerializer(
            driver, data=request.data, partial=True, context={"request": request}
        )
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data, status=200)


class DriverStatusView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, driver = require_driver(request.user)
        if ok is False:
            return driver

        return Response({"status": driver.status, "shift_started_at": driver.shift_started_at})

    def put(self, request):
        ok, driver = require_driver(request.user)
        if ok is False:
            return driver

        serializer = DriverStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data["status"]

        services.update_driver_status(driver, new_status)

        return Response({
            "message": f"Status updated to {new_status}",
            "status": new_status,
            "shift_started_at": driver.shift_started_at,
        })


#    WebSocket driver_location_update is the primary feed; this is the HTTP fallback.
class DriverLocationUpdateView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, driver = require_driver(request.user)
        if ok is False:
            return driver

        return Response({
            "latitude": float(driver.current_latitude) if driver.current_latitude is not None else None,
            "longitude": float(driver.current_longitude) if driver.current_longitude is not None else None,
            "accuracy": driver.current_accuracy,
            "last_updated": driver.last_location_update,
            "status": driver.status,
        })

    def post(self, request):
        ok, driver = require_driver(request.user)
        if ok is False:
            return driver

        serializer = LocationUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        location, geofence_event = services.update_driver_location(
            driver,
            data["latitude"],
            data["longitude"],
            accuracy=data.get("accuracy"),
            speed=data.get("speed"),
            heading=data.get("heading"),
            active_load_id=data.get("active_load_id"),
            recorded_at=data.get("recorded_at"),
        )

        return Response({
            "message": "Location updated",
            "latitude": float(location.latitude),
            "longitude": float(location.longitude),
            "recorded_at": location.recorded_at,
            "geofence_event": GeofenceEventSerializer(geofence_event).data if geofence_event else None,
        })


class DriverCurrentLoadView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, driver = require_driver(request.user)
        if ok is False:
            return driver

        load = services.get_current_load(driver)
        if not load:
            return Response({"message": "No active load"}, status=404)

        serializer = LoadSerializer(load, context={"request": request})
        return Response(serializer.data)
