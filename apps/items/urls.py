from django.urls import path
from . import views

app_name = 'items_api'

urlpatterns = [
    # 한국관광공사 공공 API 프록시 (serviceKey 서버 주입)
    path('tour/<str:endpoint>/', views.tour_api_proxy, name='tour_api_proxy'),

    # 관광지 목록/검색 (정렬 포함)
    path('tours/', views.TourListAPI.as_view(), name='tour_list'),

    # 관광지 상세 정보
    path('tours/<str:content_id>/', views.TourDetailAPI.as_view(), name='tour_detail'),
]
