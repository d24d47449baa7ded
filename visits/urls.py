from django.urls import path

from .views import (
    VisitAvailabilityView,
    VisitListCreateView,
    CancelVisitView,
    AdminVisitListView,
    AdminVisitStatusUpdateView,
)

app_name = 'visits'

urlpatterns = [
    path('', VisitListCreateView.as_view(), name='visit-list'),
    path('availability/<str:date>/', VisitAvailabilityView.as_view(), name='visit-availability'),
    path('<uuid:pk>/cancel/', CancelVisitView.as_view(), name='visit-cancel'),
]

admin_urlpatterns = [
    path('', AdminVisitListView.as_view(), name='admin-visit-list'),
    path('<uuid:pk>/status/', AdminVisitStatusUpdateView.as_view(), name='admin-visit-status'),
]
