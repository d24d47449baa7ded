from django.urls import path

from .views import InitiatePaymentView, MpesaCallbackView, QueryPaymentView

app_name = 'payments'

urlpatterns = [
    path('initiate/', InitiatePaymentView.as_view(), name='initiate'),
    path('callback/', MpesaCallbackView.as_view(), name='callback'),
    path('query/', QueryPaymentView.as_view(), name='query'),
]
