"""
관광지 목록 세션: 페이지 단위 조회, 병합/정렬, 선택 상태를 하나의 상태 레코드로 관리한다.

세션은 (필터, 검색어) 조합 하나에 대응한다. 상태 변경은 모두 reduce() 를 거치며,
TourListSession 은 비동기 조회를 발행하고 결과를 action 으로 reduce() 에 넘긴다.

요청마다 단조 증가하는 request_id 를 부여하고, 가장 최근에 발행한 요청의 응답만
적용한다. 늦게 도착한 이전 요청의 응답은 버린다.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Tuple, Union
import itertools
import logging

from asgiref.sync import sync_to_async

from apps.items.services import tourapi
from apps.items.services.sort import (
    get_next_selected_tour_id,
    is_same_order,
    merge_and_sort_tours,
    sort_tours,
)
from apps.items.types import SortOrder, TourItem, TourPage, TourQuery

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "관광지 정보를 불러오는데 실패했습니다."

PageFetcher = Callable[[TourQuery, int], Awaitable[TourPage]]
StateListener = Callable[['SessionState'], None]


class SessionStatus(str, Enum):
    IDLE = 'idle'
    LOADING_FIRST_PAGE = 'loading_first_page'
    LOADING_MORE = 'loading_more'
    ERROR = 'error'


@dataclass(frozen=True)
class SessionState:
    query: TourQuery = field(default_factory=TourQuery)
    tours: Tuple[TourItem, ...] = ()
    total_count: int = 0
    page: int = 0
    status: SessionStatus = SessionStatus.IDLE
    error: Optional[str] = None
    selected_id: Optional[str] = None
    sort_order: SortOrder = SortOrder.LATEST
    request_id: int = 0
    pending_page: Optional[int] = None

    @property
    def is_loading(self) -> bool:
        return self.status in (SessionStatus.LOADING_FIRST_PAGE, SessionStatus.LOADING_MORE)

    @property
    def has_more(self) -> bool:
        return len(self.tours) < self.total_count

    @property
    def is_empty(self) -> bool:
        """조회는 끝났지만 결과가 없는 상태 (로딩/오류와 구분)"""
        return self.status is SessionStatus.IDLE and self.page > 0 and not self.tours

    @property
    def selected_tour(self) -> Optional[TourItem]:
        return next((t for t in self.tours if t.content_id == self.selected_id), None)


# --- actions ---

@dataclass(frozen=True)
class QueryChanged:
    query: TourQuery
    request_id: int


@dataclass(frozen=True)
class PageRequested:
    page_no: int
    request_id: int


@dataclass(frozen=True)
class PageLoaded:
    request_id: int
    page_no: int
    page: TourPage


@dataclass(frozen=True)
class PageFailed:
    request_id: int
    message: str


@dataclass(frozen=True)
class SortChanged:
    order: SortOrder


@dataclass(frozen=True)
class TourSelected:
    content_id: str


Action = Union[QueryChanged, PageRequested, PageLoaded, PageFailed, SortChanged, TourSelected]


def reduce(state: SessionState, action: Action) -> SessionState:
    """
    상태 전이 함수. 전이가 허용되지 않거나 변화가 없으면 state 를 그대로 반환한다.
    """
    if isinstance(action, QueryChanged):
        # 새 세션: 누적 목록/페이지/오류 초기화 후 첫 페이지 로딩
        return replace(
            state,
            query=action.query,
            tours=(),
            total_count=0,
            page=0,
            status=SessionStatus.LOADING_FIRST_PAGE,
            error=None,
            selected_id=None,
            request_id=action.request_id,
            pending_page=1,
        )

    if isinstance(action, PageRequested):
        if action.page_no == 1:
            status = SessionStatus.LOADING_FIRST_PAGE
        elif state.status is SessionStatus.IDLE and state.has_more:
            status = SessionStatus.LOADING_MORE
        elif state.status is SessionStatus.ERROR and action.page_no == state.pending_page:
            status = SessionStatus.LOADING_MORE
        else:
            return state
        return replace(
            state,
            status=status,
            error=None,
            request_id=action.request_id,
            pending_page=action.page_no,
        )

    if isinstance(action, PageLoaded):
        if action.request_id != state.request_id or not state.is_loading:
            return state
        if action.page_no == 1:
            tours = merge_and_sort_tours([], action.page.items, state.sort_order)
            selected_id = get_next_selected_tour_id(tours, None)
        else:
            tours = merge_and_sort_tours(state.tours, action.page.items, state.sort_order)
            selected_id = get_next_selected_tour_id(tours, state.selected_id)
        return replace(
            state,
            tours=tuple(tours),
            total_count=action.page.total_count,
            page=action.page_no,
            status=SessionStatus.IDLE,
            error=None,
            selected_id=selected_id,
            pending_page=None,
        )

    if isinstance(action, PageFailed):
        if action.request_id != state.request_id or not state.is_loading:
            return state
        # 누적 목록은 그대로 둔다
        return replace(state, status=SessionStatus.ERROR, error=action.message)

    if isinstance(action, SortChanged):
        if action.order is state.sort_order:
            return state
        resorted = sort_tours(state.tours, action.order)
        if is_same_order(resorted, state.tours):
            return replace(state, sort_order=action.order)
        return replace(
            state,
            sort_order=action.order,
            tours=tuple(resorted),
            selected_id=get_next_selected_tour_id(resorted, state.selected_id),
        )

    if isinstance(action, TourSelected):
        if action.content_id == state.selected_id:
            return state
        if not any(t.content_id == action.content_id for t in state.tours):
            return state
        return replace(state, selected_id=action.content_id)

    raise TypeError(f"알 수 없는 action: {action!r}")


def _is_visible_change(previous: SessionState, current: SessionState) -> bool:
    if current is previous:
        return False
    # 정렬 기준만 바뀌고 목록 순서가 그대로면 화면 갱신 없음
    return replace(previous, sort_order=current.sort_order) != current


async def fetch_tour_page(query: TourQuery, page_no: int) -> TourPage:
    """동기 TourAPI 클라이언트를 이벤트 루프 밖 스레드에서 호출"""
    return await sync_to_async(tourapi.fetch_page, thread_sensitive=False)(query, page_no)


class TourListSession:
    """
    목록 화면 하나의 상태를 소유하는 오케스트레이터.

    필터/검색어 변경, 더 보기, 정렬 변경, 항목 선택을 받아 상태를 갱신하고
    상태 객체가 바뀔 때마다 구독자에게 알린다.
    """

    def __init__(
        self,
        fetcher: PageFetcher = fetch_tour_page,
        sort_order: SortOrder = SortOrder.LATEST,
    ):
        self._fetcher = fetcher
        self._state = SessionState(sort_order=SortOrder.parse(sort_order))
        self._request_ids = itertools.count(1)
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> SessionState:
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: Action) -> SessionState:
        previous = self._state
        self._state = reduce(previous, action)
        if _is_visible_change(previous, self._state):
            for listener in list(self._listeners):
                listener(self._state)
        return self._state

    async def change_query(self, query: TourQuery) -> SessionState:
        request_id = next(self._request_ids)
        self.dispatch(QueryChanged(query=query, request_id=request_id))
        await self._fetch(request_id, query, 1)
        return self._state

    async def load_more(self) -> bool:
        """IDLE 이고 남은 항목이 있을 때만 다음 페이지를 요청한다."""
        state = self._state
        if state.status is not SessionStatus.IDLE or not state.has_more:
            return False
        return await self._request_page(state.page + 1)

    async def retry(self) -> bool:
        """실패한 요청을 같은 페이지로 다시 발행한다."""
        state = self._state
        if state.status is not SessionStatus.ERROR or state.pending_page is None:
            return False
        return await self._request_page(state.pending_page)

    def change_sort(self, order: Union[SortOrder, str]) -> SessionState:
        return self.dispatch(SortChanged(order=SortOrder.parse(order)))

    def select(self, content_id: str) -> SessionState:
        return self.dispatch(TourSelected(content_id=content_id))

    async def _request_page(self, page_no: int) -> bool:
        request_id = next(self._request_ids)
        previous = self._state
        self.dispatch(PageRequested(page_no=page_no, request_id=request_id))
        if self._state is previous:
            return False
        await self._fetch(request_id, self._state.query, page_no)
        return True

    async def _fetch(self, request_id: int, query: TourQuery, page_no: int) -> None:
        try:
            page = await self._fetcher(query, page_no)
        except Exception as e:
            message = e.message if isinstance(e, tourapi.TourApiError) else DEFAULT_ERROR_MESSAGE
            logger.error(f"[세션] {page_no} 페이지 조회 실패 (요청 {request_id}): {e}")
            self.dispatch(PageFailed(request_id=request_id, message=message))
            return

        if request_id != self._state.request_id:
            logger.info(f"[세션] 이전 요청 {request_id} 응답 무시 (최신 요청 {self._state.request_id})")
            return
        self.dispatch(PageLoaded(request_id=request_id, page_no=page_no, page=page))
