from django.urls import path
from . import views

app_name = 'loads'

urlpatterns = [
    # Dispatcher blast APIs
    path('<int:load_id>/blast/', views.blast_load, name='blast-load'),
    path('blasts/<int:blast_id>/', views.blast_detail, name='blast-detail'),
    path('blasts/<int:blast_id>/cancel/', views.cancel_blast_view, name='cancel-blast'),

    # Driver blast APIs
    path('blasts/active/', views.active_blasts, name='active-blasts'),
    path('blasts/<int:blast_id>/respond/', views.respond_to_blast, name='respond-blast'),

    # Load lifecycle
    path('<int:load_id>/', views.load_detail, name='load-detail'),
    path('<int:load_id>/status/', views.update_status, name='update-status'),
    path('<int:load_id>/events/', views.load_events, name='load-events'),
    path('<int:load_id>/suggestions/', views.driver_suggestions, name='driver-suggestions'),
]
