from django.urls import path
from . import views

app_name = 'users_api'

urlpatterns = [
    # GET: 북마크 목록 (?sort=latest|name&areaCode=), POST: 북마크 추가 ({"content_id": "..."})
    # DELETE: 일괄 삭제 ({"content_ids": [...]})
    path('', views.BookmarkListView.as_view(), name='bookmark_list'),

    # GET: 북마크 여부, DELETE: 북마크 제거
    path('<str:content_id>/', views.BookmarkDetailView.as_view(), name='bookmark_detail'),
]
