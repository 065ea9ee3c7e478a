"""
Realtime app for WebSocket delivery of ride notifications.

This app provides:
- ChannelsNotifier, the default Notifier used by the ride ledger: it stores
  each notification and pushes it to the user's personal channel group
- A WebSocket consumer that streams those notifications to the client
- JWT authentication middleware for WebSocket connections

Usage:
    from realtime.notifications import ChannelsNotifier
    from realtime.consumers import NotificationConsumer
"""
