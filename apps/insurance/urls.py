# apps/insurance/urls.py
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

router = DefaultRouter()
router.register(r'plans', views.InsuranceViewSet, basename='insurance')
router.register(r'coverages', views.InsuranceCoverageViewSet, basename='insurance-coverage')

urlpatterns = [
    path('calculate-coverage/', views.CalculateCoverageView.as_view(), name='calculate-coverage'),
    path('', include(router.urls)),
]
