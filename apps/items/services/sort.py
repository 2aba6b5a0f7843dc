"""
관광지 목록 정렬/병합 및 선택 유지 유틸리티

모든 함수는 입력 리스트를 변경하지 않고 새 리스트를 반환한다.
"""
from typing import Dict, Iterable, List, Optional, Sequence, Union

from apps.items.types import SortOrder, TourItem, korean_collation_key


def sort_tours(tours: Iterable[TourItem], order: Union[SortOrder, str]) -> List[TourItem]:
    """
    관광지 목록을 정렬한다.
    - latest: 수정일 내림차순 (수정일 없음 = 가장 오래됨)
    - name: 제목 가나다순
    sorted() 는 안정 정렬이므로 키가 같은 항목은 입력 순서를 유지한다.
    """
    if SortOrder.parse(order) is SortOrder.NAME:
        return sorted(tours, key=lambda tour: korean_collation_key(tour.title))
    return sorted(tours, key=lambda tour: tour.sortable_modified_time, reverse=True)


def merge_tours(existing: Iterable[TourItem], incoming: Iterable[TourItem]) -> List[TourItem]:
    """
    기존 관광지와 새로 가져온 관광지를 병합한다.
    같은 contentid 가 있으면 새 항목으로 덮어쓰되 기존 위치를 유지하고,
    새로운 항목은 뒤에 붙인다.
    """
    merged: Dict[str, TourItem] = {}
    for tour in existing:
        merged[tour.content_id] = tour
    for tour in incoming:
        merged[tour.content_id] = tour
    return list(merged.values())


def merge_and_sort_tours(
    existing: Iterable[TourItem],
    incoming: Iterable[TourItem],
    order: Union[SortOrder, str],
) -> List[TourItem]:
    return sort_tours(merge_tours(existing, incoming), order)


def get_next_selected_tour_id(
    sorted_tours: Sequence[TourItem],
    previous_selected_id: Optional[str] = None,
) -> Optional[str]:
    """이전 선택이 목록에 남아 있으면 유지, 아니면 첫 항목, 목록이 비었으면 None"""
    if previous_selected_id and any(tour.content_id == previous_selected_id for tour in sorted_tours):
        return previous_selected_id
    return sorted_tours[0].content_id if sorted_tours else None


def is_same_order(a: Sequence[TourItem], b: Sequence[TourItem]) -> bool:
    if len(a) != len(b):
        return False
    return all(x.content_id == y.content_id for x, y in zip(a, b))
