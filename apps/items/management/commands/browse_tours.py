# items/management/commands/browse_tours.py
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from apps.items.services.session import SessionStatus, TourListSession
from apps.items.types import AREA_LABELS, CONTENT_TYPES, SortOrder, TourQuery
import asyncio
import logging

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = '관광지 목록 세션을 실행해 필터/검색 결과를 페이지 단위로 불러와 출력하는 명령어'

    def add_arguments(self, parser):
        parser.add_argument('--area', type=str, help='지역코드 (예: 1=서울, 6=부산)')
        parser.add_argument('--type', dest='content_type', type=str,
                            choices=sorted(CONTENT_TYPES), help='관광 타입 ID')
        parser.add_argument('--keyword', type=str, default='', help='검색어 (없으면 지역 기반 목록)')
        parser.add_argument('--sort', type=str, default=SortOrder.LATEST.value,
                            choices=[order.value for order in SortOrder], help='정렬: latest|name')
        parser.add_argument('--pages', type=int, default=1, help='불러올 페이지 수')
        parser.add_argument('--page-size', type=int, default=20, help='페이지당 항목 수')

    def handle(self, *args, **options):
        if options['pages'] < 1:
            raise CommandError('--pages 는 1 이상이어야 합니다.')

        query = TourQuery(
            area_code=options['area'],
            content_type_id=options['content_type'],
            keyword=options['keyword'],
            page_size=options['page_size'],
        )
        start_time = timezone.now()
        state = asyncio.run(self._browse(query, options['sort'], options['pages']))

        if state.status is SessionStatus.ERROR:
            logger.error(f"관광지 목록 조회 실패: {state.error}")
            raise CommandError(state.error)

        if state.is_empty:
            self.stdout.write(self.style.WARNING('검색 결과가 없습니다.'))
            return

        area_label = AREA_LABELS.get(query.area_code or '', '전체 지역')
        self.stdout.write(
            f"{area_label} / 총 {state.total_count:,}개 중 {len(state.tours)}개 "
            f"({state.page}페이지, 정렬: {state.sort_order.value})"
        )
        for tour in state.tours:
            marker = '*' if tour.content_id == state.selected_id else ' '
            coordinates = tour.coordinates
            location = f"{coordinates.lat:.5f},{coordinates.lng:.5f}" if coordinates else '좌표 없음'
            self.stdout.write(f"{marker} [{tour.content_id}] {tour.title} | {tour.full_address} | {location}")

        selected = state.selected_tour
        if selected is not None:
            self.stdout.write(f"선택된 관광지: {selected.title} ({selected.image or '이미지 없음'})")

        elapsed = timezone.now() - start_time
        self.stdout.write(self.style.SUCCESS(f"총 소요 시간: {elapsed.total_seconds():.2f}초"))

    async def _browse(self, query, sort_order, pages):
        session = TourListSession(sort_order=SortOrder.parse(sort_order))
        await session.change_query(query)
        for _ in range(pages - 1):
            if not await session.load_more():
                break
        return session.state
