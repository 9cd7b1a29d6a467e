"""
Realtime app for WebSocket communication with drivers and dispatchers.

This app provides:
- WebSocket consumers for drivers (offers, GPS pings, blast responses) and
  dispatchers (live load/blast feed)
- Notification helpers used by the service layer (fire-and-forget pushes)
- JWT authentication middleware for WebSocket connections

Key Components:
    - consumers/: WebSocket consumers (driver, dispatcher)
    - notifications.py: send_push / notify_dispatchers and their on_commit variants
    - middleware.py: JWT querystring authentication

Usage:
    from realtime.consumers import DriverConsumer, DispatcherConsumer
    from realtime.notifications import send_push, notify_dispatchers
"""
