"""
한국관광공사 공공 API (KorService2) 클라이언트

주요 기능:
1. 지역코드 조회 (areaCode2)
2. 지역 기반 관광지 목록 조회 (areaBasedList2)
3. 키워드 검색 (searchKeyword2)
4. 관광지 상세 정보 조회 (detailCommon2, detailIntro2, detailImage2)
5. 반려동물 동반 정보 조회 (detailPetTour2)

전송 오류, HTTP 오류, resultCode != '0000' 은 모두 TourApiError 로 올린다.
"""
from typing import Any, Dict, List, Optional, Union
from django.conf import settings
from apps.items.types import (
    AreaCode,
    PetTourInfo,
    TourDetail,
    TourImage,
    TourIntro,
    TourItem,
    TourPage,
    TourQuery,
)
import requests
import time
import logging

logger = logging.getLogger(__name__)

COMMON_PARAMS = {
    'MobileOS': 'ETC',
    'MobileApp': 'MyTrip',
    '_type': 'json',
}

SUCCESS_CODE = '0000'


class TourApiError(Exception):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


def build_url(endpoint: str) -> str:
    base_url = settings.TOUR_API_BASE_URL.rstrip('/')
    return f"{base_url}/{endpoint.lstrip('/')}"


def get_service_key() -> str:
    key = settings.TOUR_API_KEY
    if not key:
        raise TourApiError("한국관광공사 API 키가 설정되지 않았습니다. TOUR_API_KEY 환경변수를 설정해주세요.")
    return key


def fetch_tour_api(
    endpoint: str,
    params: Optional[Dict[str, Union[str, int]]] = None,
    max_retries: int = 1,
) -> Dict[str, Any]:
    """
    TourAPI 호출 후 응답 JSON 의 body 를 반환한다.
    전송 오류는 max_retries 만큼 재시도하고, 그래도 실패하면 TourApiError.
    """
    url = build_url(endpoint)
    query = {**COMMON_PARAMS, **{k: str(v) for k, v in (params or {}).items()}}
    query['serviceKey'] = get_service_key()

    max_retries = max(max_retries, 1)
    for retry in range(max_retries):
        try:
            response = requests.get(url, params=query, timeout=settings.TOUR_API_TIMEOUT)
            response.raise_for_status()
            data = response.json()
            break
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.error(f"[TourAPI] {endpoint} HTTP 오류: {status}")
            raise TourApiError(f"API 요청 실패: {status}", status=status) from e
        except requests.exceptions.JSONDecodeError as e:
            # RequestException 의 하위 클래스이므로 재시도 분기보다 먼저 잡는다
            logger.error(f"[TourAPI] {endpoint} 응답 파싱 실패: {e}")
            raise TourApiError("API 응답 형식이 올바르지 않습니다.") from e
        except requests.exceptions.RequestException as e:
            logger.warning(f"[TourAPI][시도 {retry + 1}/{max_retries}] {endpoint} 호출 실패: {e}")
            if retry == max_retries - 1:
                raise TourApiError("관광지 정보를 불러오는데 실패했습니다.") from e
            time.sleep(0.5 * (retry + 1))

    response_body = data.get('response') if isinstance(data, dict) else None
    if not isinstance(response_body, dict):
        raise TourApiError("API 응답 형식이 올바르지 않습니다.")

    header = response_body.get('header') or {}
    result_code = header.get('resultCode')
    if result_code != SUCCESS_CODE:
        result_msg = header.get('resultMsg', '')
        logger.error(f"[TourAPI] {endpoint} 에러 응답: {result_code} - {result_msg}")
        raise TourApiError(f"API 에러: {result_code} - {result_msg}")

    body = response_body.get('body')
    return body if isinstance(body, dict) else {}


def extract_items(body: Dict[str, Any]) -> List[Dict[str, Any]]:
    """body.items.item 을 항상 리스트로 정규화 (단일 항목이면 dict 로 내려온다)"""
    items = body.get('items')
    if not isinstance(items, dict):
        return []
    item = items.get('item')
    if isinstance(item, list):
        return [i for i in item if isinstance(i, dict)]
    if isinstance(item, dict):
        return [item]
    return []


def _first(body: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    items = extract_items(body)
    return items[0] if items else None


def _to_page(body: Dict[str, Any]) -> TourPage:
    items = extract_items(body)
    if not items:
        return TourPage(items=(), total_count=0)
    try:
        total_count = int(body.get('totalCount') or 0)
    except (TypeError, ValueError):
        total_count = 0
    return TourPage(items=tuple(TourItem.from_api(item) for item in items), total_count=total_count)


def get_area_codes(area_code: Optional[str] = None) -> List[AreaCode]:
    """지역코드 조회. area_code 가 없으면 시/도 목록"""
    params = {'areaCode': area_code} if area_code else {}
    body = fetch_tour_api('areaCode2', params)
    return [AreaCode.from_api(item) for item in extract_items(body)]


def get_tour_list(
    area_code: Optional[str] = None,
    content_type_id: Optional[str] = None,
    num_of_rows: int = 10,
    page_no: int = 1,
    sigungu_code: Optional[str] = None,
) -> TourPage:
    params = {'numOfRows': num_of_rows, 'pageNo': page_no}
    if area_code:
        params['areaCode'] = area_code
    if content_type_id:
        params['contentTypeId'] = content_type_id
    if sigungu_code:
        params['sigunguCode'] = sigungu_code
    return _to_page(fetch_tour_api('areaBasedList2', params))


def search_tours(
    keyword: str,
    area_code: Optional[str] = None,
    content_type_id: Optional[str] = None,
    num_of_rows: int = 10,
    page_no: int = 1,
) -> TourPage:
    params = {'keyword': keyword, 'numOfRows': num_of_rows, 'pageNo': page_no}
    if area_code:
        params['areaCode'] = area_code
    if content_type_id:
        params['contentTypeId'] = content_type_id
    return _to_page(fetch_tour_api('searchKeyword2', params))


def fetch_page(query: TourQuery, page_no: int) -> TourPage:
    """검색어가 있으면 키워드 검색, 없으면 지역 기반 목록"""
    if query.is_search:
        return search_tours(
            keyword=query.keyword,
            area_code=query.area_code,
            content_type_id=query.content_type_id,
            num_of_rows=query.page_size,
            page_no=page_no,
        )
    return get_tour_list(
        area_code=query.area_code,
        content_type_id=query.content_type_id,
        num_of_rows=query.page_size,
        page_no=page_no,
    )


def get_tour_detail(content_id: str) -> Optional[TourDetail]:
    item = _first(fetch_tour_api('detailCommon2', {'contentId': content_id}))
    return TourDetail.from_api(item) if item else None


def get_tour_intro(content_id: str, content_type_id: str) -> Optional[TourIntro]:
    item = _first(fetch_tour_api('detailIntro2', {
        'contentId': content_id,
        'contentTypeId': content_type_id,
    }))
    return TourIntro.from_api(item) if item else None


def get_tour_images(content_id: str) -> List[TourImage]:
    body = fetch_tour_api('detailImage2', {'contentId': content_id})
    return [TourImage.from_api(item) for item in extract_items(body)]


def get_pet_tour_info(content_id: str) -> Optional[PetTourInfo]:
    item = _first(fetch_tour_api('detailPetTour2', {'contentId': content_id}))
    return PetTourInfo.from_api(item) if item else None
