"""
Services package - Business logic layer.

This package contains the ride-sharing business logic. It operates on
Django models but is decoupled from the HTTP/WebSocket layer.

Modules:
    - ride_management: RideLedger, the offer/request state machine
    - matching: ranking requests around a new offer
    - geocoding: address resolution behind a content-addressed cache
    - notifications: notification variants and best-effort fan-out
"""
