import requests
import logging

from django.conf import settings
from django.core.cache import cache
from django.http import JsonResponse
from django.views.decorators.http import require_GET
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from .services import tourapi
from .services.sort import get_next_selected_tour_id, merge_and_sort_tours
from .services.tourapi import TourApiError
from .types import SortOrder, TourQuery

logger = logging.getLogger(__name__)

# 프록시로 허용하는 KorService2 endpoint
ALLOWED_ENDPOINTS = frozenset({
    'areaBasedList2',
    'searchKeyword2',
    'detailCommon2',
    'detailIntro2',
    'detailImage2',
    'detailPetTour2',
    'areaCode2',
})

_KOREAN_JSON = {'ensure_ascii': False}


@require_GET
def tour_api_proxy(request, endpoint):
    """
    한국관광공사 공공 API 프록시.
    허용된 endpoint 만 받아 서버에서 serviceKey 를 주입해 호출하고 결과를 그대로 돌려준다.
    """
    if endpoint not in ALLOWED_ENDPOINTS:
        return JsonResponse({'error': '지원하지 않는 endpoint 입니다.'}, status=400, json_dumps_params=_KOREAN_JSON)

    try:
        service_key = tourapi.get_service_key()
    except TourApiError as e:
        logger.error(f"프록시 설정 오류: {e.message}")
        return JsonResponse({'error': e.message}, status=500, json_dumps_params=_KOREAN_JSON)

    params = request.GET.copy()
    params['serviceKey'] = service_key
    for key, value in tourapi.COMMON_PARAMS.items():
        params.setdefault(key, value)

    try:
        response = requests.get(
            tourapi.build_url(endpoint),
            params=dict(params.lists()),
            headers={'Accept': 'application/json'},
            timeout=settings.TOUR_API_TIMEOUT,
        )
    except requests.exceptions.RequestException as e:
        logger.error(f"Tour API proxy error ({endpoint}): {e}")
        return JsonResponse({'error': '서버에서 공공 API 호출에 실패했습니다.'}, status=500, json_dumps_params=_KOREAN_JSON)

    if not response.ok:
        logger.warning(f"Tour API proxy upstream {response.status_code} ({endpoint})")
        return JsonResponse(
            {'error': '공공 API 요청에 실패했습니다.', 'status': response.status_code},
            status=response.status_code,
            json_dumps_params=_KOREAN_JSON,
        )

    if 'application/json' in response.headers.get('Content-Type', ''):
        try:
            data = response.json()
        except requests.exceptions.JSONDecodeError:
            data = {'raw': response.text}
    else:
        data = {'raw': response.text}
    return JsonResponse(data, status=response.status_code, safe=False, json_dumps_params=_KOREAN_JSON)


class TourListAPI(APIView):
    """
    지역/타입 필터 + 검색어로 관광지 한 페이지를 조회하고 정렬해서 반환한다.
    GET /api/tours/?areaCode=1&contentTypeId=12&keyword=숲&page=1&sort=name
    """
    permission_classes = [permissions.AllowAny]
    CACHE_PREFIX = "tours"

    def get(self, request):
        params = request.query_params
        try:
            page_no = int(params.get('page', 1))
            if page_no < 1:
                raise ValueError(page_no)
        except ValueError:
            return Response(
                {"status": "error", "message": "page 는 1 이상의 정수여야 합니다."},
                status=status.HTTP_400_BAD_REQUEST
            )

        query = TourQuery(
            area_code=params.get('areaCode'),
            content_type_id=params.get('contentTypeId'),
            keyword=params.get('keyword', ''),
            page_size=settings.TOUR_LIST_PAGE_SIZE,
        )
        order = SortOrder.parse(params.get('sort'))
        cache_key = self._generate_cache_key(query, page_no, order)

        cached = cache.get(cache_key)
        if cached is not None:
            logger.info(f"캐시 히트: {cache_key}")
            tours, total_count = cached
        else:
            try:
                page = tourapi.fetch_page(query, page_no)
            except TourApiError as e:
                logger.error(f"관광지 목록 조회 실패: {e.message}")
                return Response(
                    {"status": "error", "message": e.message},
                    status=status.HTTP_502_BAD_GATEWAY
                )
            tours = tuple(merge_and_sort_tours([], page.items, order))
            total_count = page.total_count
            cache.set(cache_key, (tours, total_count), settings.TOUR_CACHE_TIMEOUT)

        # 선택은 요청마다 달라지므로 캐시 밖에서 계산
        return Response({
            "status": "success",
            "items": [tour.to_dict() for tour in tours],
            "totalCount": total_count,
            "page": page_no,
            "numOfRows": query.page_size,
            "hasMore": page_no * query.page_size < total_count,
            "sort": order.value,
            "selectedId": get_next_selected_tour_id(tours, params.get('selected')),
        }, status=status.HTTP_200_OK)

    def _generate_cache_key(self, query, page_no, order):
        mode = f"q:{query.keyword}" if query.is_search else "list"
        return (
            f"{self.CACHE_PREFIX}:{mode}:a{query.area_code or ''}:t{query.content_type_id or ''}"
            f":n{query.page_size}:p{page_no}:{order.value}"
        )


class TourDetailAPI(APIView):
    """관광지 상세: 기본 정보 + 운영 정보 + 이미지 + 반려동물 정보"""
    permission_classes = [permissions.AllowAny]

    def get(self, request, content_id):
        try:
            detail = tourapi.get_tour_detail(content_id)
            if detail is None:
                return Response(
                    {"status": "error", "message": "관광지 정보를 찾을 수 없습니다."},
                    status=status.HTTP_404_NOT_FOUND
                )
            intro = tourapi.get_tour_intro(content_id, detail.content_type_id) if detail.content_type_id else None
            images = tourapi.get_tour_images(content_id)
            pet_info = tourapi.get_pet_tour_info(content_id)
        except TourApiError as e:
            logger.error(f"관광지 상세 조회 실패 ({content_id}): {e.message}")
            return Response(
                {"status": "error", "message": e.message},
                status=status.HTTP_502_BAD_GATEWAY
            )

        coordinates = detail.coordinates
        return Response({
            "status": "success",
            "detail": {
                **detail.to_dict(),
                "homepageUrl": detail.homepage_url,
                "coordinates": coordinates._asdict() if coordinates else None,
            },
            "intro": intro.to_dict() if intro else None,
            "images": [image.to_dict() for image in images],
            "pet": pet_info.to_dict() if pet_info else None,
        }, status=status.HTTP_200_OK)
