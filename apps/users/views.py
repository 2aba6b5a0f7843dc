import logging
from dataclasses import replace

from django.conf import settings
from django.core.cache import cache
from django.db import IntegrityError, transaction
from rest_framework import serializers, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.items.services import tourapi
from apps.items.services.sort import sort_tours
from apps.items.services.tourapi import TourApiError
from apps.items.types import SortOrder

from .models import UserBookmark

logger = logging.getLogger(__name__)


class BookmarkSerializer(serializers.ModelSerializer):
    class Meta:
        model = UserBookmark
        fields = ['content_id', 'created_at']
        read_only_fields = ['created_at']


class BookmarkListView(APIView):
    """
    북마크 목록 조회 / 추가 / 일괄 삭제
    GET /api/bookmarks/?sort=latest|name&areaCode=1
      - latest: 북마크 추가일 내림차순, name: 관광지 이름 가나다순
      - 각 북마크에 관광지 상세 정보를 붙이고, 상세 정보가 없는 관광지는 제외한다
    """
    permission_classes = [IsAuthenticated]
    DETAIL_CACHE_PREFIX = "tour_detail"

    def get(self, request):
        order = SortOrder.parse(request.query_params.get('sort'))
        area_code = (request.query_params.get('areaCode') or '').strip()
        bookmarks = list(request.user.bookmarks.all())

        rows = {}
        try:
            for bookmark in bookmarks:
                detail = self._get_tour_detail(bookmark.content_id)
                if detail is None:
                    logger.warning(f"북마크 관광지 정보 없음: content={bookmark.content_id}")
                    continue
                # 목록의 식별자는 북마크의 content_id 를 따른다
                tour = replace(detail.to_tour_item(), content_id=bookmark.content_id)
                rows[bookmark.content_id] = (bookmark, tour)
        except TourApiError as e:
            logger.error(f"북마크 목록 조회 실패: user={request.user.id} {e.message}")
            return Response(
                {"status": "error", "message": e.message},
                status=status.HTTP_502_BAD_GATEWAY
            )

        area_codes = sorted({tour.area_code for _, tour in rows.values() if tour.area_code})
        tours = [tour for _, tour in rows.values() if not area_code or tour.area_code == area_code]
        if order is SortOrder.NAME:
            tours = sort_tours(tours, order)
        # latest 는 queryset 정렬(-created_at) 그대로

        items = []
        for tour in tours:
            bookmark, _ = rows[tour.content_id]
            items.append({
                **BookmarkSerializer(bookmark).data,
                'tour': tour.to_dict(),
            })
        return Response({
            "status": "success",
            "sort": order.value,
            "totalCount": len(rows),
            "areaCodes": area_codes,
            "items": items,
        }, status=status.HTTP_200_OK)

    def post(self, request):
        content_id = str(request.data.get('content_id') or '').strip()
        if not content_id:
            return Response(
                {"status": "error", "message": "content_id 가 필요합니다."},
                status=status.HTTP_400_BAD_REQUEST
            )

        try:
            with transaction.atomic():
                _, created = UserBookmark.objects.get_or_create(user=request.user, content_id=content_id)
        except IntegrityError:
            # 동시 요청으로 이미 추가된 경우
            created = False

        if created:
            logger.info(f"북마크 추가: user={request.user.id} content={content_id}")
            return Response({'status': 'added', 'content_id': content_id}, status=status.HTTP_201_CREATED)
        return Response({'status': 'exists', 'content_id': content_id}, status=status.HTTP_200_OK)

    def delete(self, request):
        """선택한 북마크 일괄 삭제: {"content_ids": ["...", ...]}"""
        content_ids = request.data.get('content_ids')
        if not isinstance(content_ids, list) or not content_ids:
            return Response(
                {"status": "error", "message": "content_ids 목록이 필요합니다."},
                status=status.HTTP_400_BAD_REQUEST
            )
        content_ids = {str(content_id).strip() for content_id in content_ids} - {''}

        targets = UserBookmark.objects.filter(user=request.user, content_id__in=content_ids)
        removed = sorted(targets.values_list('content_id', flat=True))
        targets.delete()

        logger.info(f"북마크 일괄 삭제: user={request.user.id} {len(removed)}/{len(content_ids)}개")
        return Response({
            'status': 'removed',
            'removed': removed,
            'missing': sorted(content_ids - set(removed)),
        }, status=status.HTTP_200_OK)

    def _get_tour_detail(self, content_id):
        cache_key = f"{self.DETAIL_CACHE_PREFIX}:{content_id}"
        detail = cache.get(cache_key)
        if detail is None:
            detail = tourapi.get_tour_detail(content_id)
            if detail is not None:
                cache.set(cache_key, detail, settings.TOUR_CACHE_TIMEOUT)
        return detail


class BookmarkDetailView(APIView):
    """북마크 여부 확인 / 제거"""
    permission_classes = [IsAuthenticated]

    def get(self, request, content_id):
        bookmarked = UserBookmark.objects.filter(user=request.user, content_id=content_id).exists()
        return Response({'content_id': content_id, 'bookmarked': bookmarked}, status=status.HTTP_200_OK)

    def delete(self, request, content_id):
        deleted, _ = UserBookmark.objects.filter(user=request.user, content_id=content_id).delete()
        if not deleted:
            return Response(
                {"status": "error", "message": "북마크가 존재하지 않습니다."},
                status=status.HTTP_404_NOT_FOUND
            )
        logger.info(f"북마크 제거: user={request.user.id} content={content_id}")
        return Response({'status': 'removed', 'content_id': content_id}, status=status.HTTP_200_OK)
