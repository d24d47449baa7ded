from django.urls import path

from .views import VaccinationScheduleView, UpcomingVaccinationsView, VaccinationTipsView

app_name = 'vaccinations'

urlpatterns = [
    path('schedule/', VaccinationScheduleView.as_view(), name='schedule'),
    path('upcoming/', UpcomingVaccinationsView.as_view(), name='upcoming'),
    path('tips/', VaccinationTipsView.as_view(), name='tips'),
]
