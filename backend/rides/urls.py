from django.urls import path
from . import views

app_name = 'rides'

urlpatterns = [
    path('', views.list_rides, name='list-rides'),

    # Offers (drivers)
    path('offers/', views.create_offer, name='create-offer'),
    path('offers/<uuid:offer_id>/matches/', views.offer_matches, name='offer-matches'),
    path('offers/<uuid:offer_id>/pickup/<uuid:request_id>/', views.pickup_request, name='pickup-request'),
    path('offers/<uuid:offer_id>/kick/<int:passenger_id>/', views.kick_passenger, name='kick-passenger'),
    path('offers/<uuid:offer_id>/leave/', views.leave_ride, name='leave-ride'),
    path('offers/<uuid:offer_id>/cancel/', views.cancel_offer, name='cancel-offer'),

    # Requests (guests)
    path('requests/', views.create_request, name='create-request'),
    path('requests/<uuid:request_id>/cancel/', views.cancel_request, name='cancel-request'),
]
