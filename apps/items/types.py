"""
한국관광공사 공공 API (KorService2) 응답을 다루는 값 타입 정의

주요 타입:
- TourItem: 관광지 목록 항목 (areaBasedList2, searchKeyword2)
- TourDetail: 관광지 상세 정보 (detailCommon2)
- TourIntro: 관광 타입별 운영 정보 (detailIntro2)
- TourImage: 관광지 이미지 (detailImage2)
- PetTourInfo: 반려동물 동반 정보 (detailPetTour2)
- AreaCode: 지역 코드 (areaCode2)

API 는 모든 값을 문자열로 내려주며, 항목에 따라 키가 빠지는 경우가 많다.
각 타입의 from_api() 는 키가 없어도 예외 없이 기본값으로 채운다.
"""
import math
import re
import unicodedata
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, FrozenSet, NamedTuple, Optional, Tuple


def api_field(api_key: str, default: Any = None):
    """dataclass 필드와 API 응답 키를 연결한다."""
    return field(default=default, metadata={'api': api_key})


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class _ApiRecord:
    """api_field() 메타데이터를 이용한 API dict <-> dataclass 변환"""

    @classmethod
    def from_api(cls, data: Dict[str, Any]):
        data = data or {}
        kwargs = {}
        for f in fields(cls):
            api_key = f.metadata.get('api')
            if api_key is None:
                continue
            value = _clean(data.get(api_key))
            # 값이 없으면 필드 기본값 (필수 문자열은 '', 선택 값은 None)
            kwargs[f.name] = f.default if value is None else value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        result = {}
        for f in fields(self):
            api_key = f.metadata.get('api')
            if api_key is None:
                continue
            value = getattr(self, f.name)
            if value is not None:
                result[api_key] = value
        return result


class Coordinates(NamedTuple):
    lng: float
    lat: float


def convert_coordinates(map_x: Optional[str], map_y: Optional[str]) -> Optional[Coordinates]:
    """
    문자열 WGS84 좌표(경도 mapx, 위도 mapy)를 숫자로 변환한다.
    값이 없거나 숫자가 아니면 None 을 반환하며, 예외를 던지지 않는다.
    """
    try:
        lng = float(map_x)
        lat = float(map_y)
    except (TypeError, ValueError):
        return None

    if not (math.isfinite(lng) and math.isfinite(lat)):
        return None
    return Coordinates(lng=lng, lat=lat)


class _CoordinateMixin:
    map_x: Optional[str]
    map_y: Optional[str]

    @property
    def coordinates(self) -> Optional[Coordinates]:
        return convert_coordinates(self.map_x, self.map_y)


# 수정일이 없는 항목은 가장 오래된 것으로 취급
DEFAULT_MODIFIED_TIME = '00000000000000'


@dataclass(frozen=True)
class TourItem(_CoordinateMixin, _ApiRecord):
    content_id: str = api_field('contentid', '')
    title: str = api_field('title', '')
    address: str = api_field('addr1', '')
    address_detail: Optional[str] = api_field('addr2')
    area_code: str = api_field('areacode', '')
    content_type_id: str = api_field('contenttypeid', '')
    map_x: Optional[str] = api_field('mapx')
    map_y: Optional[str] = api_field('mapy')
    modified_time: str = api_field('modifiedtime', '')
    first_image: Optional[str] = api_field('firstimage')
    first_image2: Optional[str] = api_field('firstimage2')
    tel: Optional[str] = api_field('tel')
    cat1: Optional[str] = api_field('cat1')
    cat2: Optional[str] = api_field('cat2')
    cat3: Optional[str] = api_field('cat3')
    overview: Optional[str] = api_field('overview')

    @property
    def sortable_modified_time(self) -> str:
        return self.modified_time or DEFAULT_MODIFIED_TIME

    @property
    def image(self) -> Optional[str]:
        return self.first_image or self.first_image2

    @property
    def full_address(self) -> str:
        return " ".join(part for part in (self.address, self.address_detail) if part)


_HREF_PATTERN = re.compile(r'href=[\'"]?([^\'" >]+)', re.IGNORECASE)


@dataclass(frozen=True)
class TourDetail(_CoordinateMixin, _ApiRecord):
    content_id: str = api_field('contentid', '')
    content_type_id: str = api_field('contenttypeid', '')
    title: str = api_field('title', '')
    address: str = api_field('addr1', '')
    address_detail: Optional[str] = api_field('addr2')
    area_code: str = api_field('areacode', '')
    zipcode: Optional[str] = api_field('zipcode')
    tel: Optional[str] = api_field('tel')
    homepage: Optional[str] = api_field('homepage')
    overview: Optional[str] = api_field('overview')
    first_image: Optional[str] = api_field('firstimage')
    first_image2: Optional[str] = api_field('firstimage2')
    map_x: Optional[str] = api_field('mapx')
    map_y: Optional[str] = api_field('mapy')
    created_time: Optional[str] = api_field('createdtime')
    modified_time: Optional[str] = api_field('modifiedtime')

    @property
    def homepage_url(self) -> Optional[str]:
        # homepage 값은 <a href="..."> 태그로 내려오는 경우가 많다
        if not self.homepage:
            return None
        match = _HREF_PATTERN.search(self.homepage)
        if match:
            return match.group(1)
        if self.homepage.startswith(('http://', 'https://')):
            return self.homepage
        return None

    def to_tour_item(self) -> TourItem:
        """목록 화면과 같은 기준으로 정렬할 수 있도록 TourItem 으로 변환"""
        return TourItem(
            content_id=self.content_id,
            title=self.title,
            address=self.address,
            address_detail=self.address_detail,
            area_code=self.area_code,
            content_type_id=self.content_type_id,
            map_x=self.map_x,
            map_y=self.map_y,
            modified_time=self.modified_time or '',
            first_image=self.first_image,
            first_image2=self.first_image2,
            tel=self.tel,
            overview=self.overview,
        )


@dataclass(frozen=True)
class TourImage(_ApiRecord):
    content_id: str = api_field('contentid', '')
    image_name: Optional[str] = api_field('imgname')
    origin_url: Optional[str] = api_field('originimgurl')
    small_url: Optional[str] = api_field('smallimageurl')
    serial_num: Optional[str] = api_field('serialnum')


@dataclass(frozen=True)
class PetTourInfo(_ApiRecord):
    content_id: str = api_field('contentid', '')
    content_type_id: str = api_field('contenttypeid', '')
    leash: Optional[str] = api_field('chkpetleash')
    size: Optional[str] = api_field('chkpetsize')
    place: Optional[str] = api_field('chkpetplace')
    fee: Optional[str] = api_field('chkpetfee')
    info: Optional[str] = api_field('petinfo')
    parking: Optional[str] = api_field('parking')


@dataclass(frozen=True)
class AreaCode(_ApiRecord):
    code: str = api_field('code', '')
    name: str = api_field('name', '')


@dataclass(frozen=True)
class ContentType:
    id: str
    name: str
    intro_fields: FrozenSet[str]


def _intro(*names: str) -> FrozenSet[str]:
    return frozenset(names)


# 관광 타입 코드 → 이름, detailIntro2 가 해당 타입에 대해 내려주는 필드 목록
CONTENT_TYPES: Dict[str, ContentType] = {
    ct.id: ct for ct in (
        ContentType('12', '관광지', _intro(
            'heritage1', 'heritage2', 'heritage3', 'infocenter', 'opendate', 'restdate',
            'expguide', 'expagerange', 'accomcount', 'useseason', 'usetime', 'parking',
            'chkbabycarriage', 'chkpet', 'chkcreditcard',
        )),
        ContentType('14', '문화시설', _intro(
            'accomcountculture', 'chkbabycarriageculture', 'chkcreditcardculture',
            'chkpetculture', 'discountinfo', 'infocenterculture', 'parkingculture',
            'parkingfee', 'restdateculture', 'usefee', 'usetimeculture', 'scale', 'spendtime',
        )),
        ContentType('15', '축제/행사', _intro(
            'agelimit', 'bookingplace', 'discountinfofestival', 'eventenddate',
            'eventhomepage', 'eventplace', 'eventstartdate', 'festivalgrade', 'placeinfo',
            'playtime', 'program', 'spendtimefestival', 'sponsor1', 'sponsor1tel',
            'sponsor2', 'sponsor2tel', 'subevent', 'usetimefestival',
        )),
        ContentType('25', '여행코스', _intro(
            'distance', 'infocentertourcourse', 'schedule', 'taketime', 'theme',
        )),
        ContentType('28', '레포츠', _intro(
            'accomcountleports', 'chkbabycarriageleports', 'chkcreditcardleports',
            'chkpetleports', 'expagerangeleports', 'infocenterleports', 'openperiod',
            'parkingfeeleports', 'parkingleports', 'reservation', 'restdateleports',
            'scaleleports', 'usefeeleports', 'usetimeleports',
        )),
        ContentType('32', '숙박', _intro(
            'accomcountlodging', 'checkintime', 'checkouttime', 'chkcooking', 'foodplace',
            'infocenterlodging', 'parkinglodging', 'pickup', 'roomcount',
            'reservationlodging', 'reservationurl', 'roomtype', 'scalelodging',
            'subfacility', 'barbecue', 'beauty', 'beverage', 'bicycle', 'campfire',
            'fitness', 'karaoke', 'publicbath', 'publicpc', 'sauna', 'seminar', 'sports',
            'refundregulation',
        )),
        ContentType('38', '쇼핑', _intro(
            'chkbabycarriageshopping', 'chkcreditcardshopping', 'chkpetshopping',
            'culturecenter', 'fairday', 'infocentershopping', 'opendateshopping',
            'opentime', 'parkingshopping', 'restdateshopping', 'restroom', 'saleitem',
            'saleitemcost', 'scaleshopping', 'shopguide',
        )),
        ContentType('39', '음식점', _intro(
            'chkcreditcardfood', 'discountinfofood', 'firstmenu', 'infocenterfood',
            'kidsfacility', 'opendatefood', 'opentimefood', 'packing', 'parkingfood',
            'reservationfood', 'restdatefood', 'scalefood', 'seat', 'smoking',
            'treatmenu', 'lcnsno',
        )),
    )
}

# 시/도 지역 코드 (areaCode2 기본값)
AREA_LABELS: Dict[str, str] = {
    '1': '서울', '2': '인천', '3': '대전', '4': '대구', '5': '광주', '6': '부산',
    '7': '울산', '8': '세종', '31': '경기', '32': '강원', '33': '충북', '34': '충남',
    '35': '경북', '36': '경남', '37': '전북', '38': '전남', '39': '제주',
}


@dataclass(frozen=True)
class TourIntro:
    """
    관광 타입별 운영 정보.
    content_type_id 에 따라 내려오는 필드 집합이 달라지므로, 공통 식별자 외의 값은
    CONTENT_TYPES 에 선언된 이름만 extra 에 담는다. 알 수 없는 타입이면 모든 값을 유지한다.
    """
    content_id: str
    content_type_id: str
    extra: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'TourIntro':
        data = data or {}
        content_type_id = _clean(data.get('contenttypeid')) or ''
        content_type = CONTENT_TYPES.get(content_type_id)
        extra = {}
        for key, value in data.items():
            if key in ('contentid', 'contenttypeid'):
                continue
            if content_type is not None and key not in content_type.intro_fields:
                continue
            text = _clean(value)
            if text is not None:
                extra[key] = text
        return cls(
            content_id=_clean(data.get('contentid')) or '',
            content_type_id=content_type_id,
            extra=extra,
        )

    @property
    def content_type(self) -> Optional[ContentType]:
        return CONTENT_TYPES.get(self.content_type_id)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.extra.get(name, default)

    def to_dict(self) -> Dict[str, Any]:
        return {'contentid': self.content_id, 'contenttypeid': self.content_type_id, **self.extra}


class SortOrder(str, Enum):
    LATEST = 'latest'
    NAME = 'name'

    @classmethod
    def parse(cls, value: Optional[str]) -> 'SortOrder':
        try:
            return cls(value)
        except ValueError:
            return cls.LATEST


@dataclass(frozen=True)
class TourPage:
    items: Tuple[TourItem, ...] = ()
    total_count: int = 0


@dataclass(frozen=True)
class TourQuery:
    """목록/검색 세션을 구분하는 필터 + 검색어 조합"""
    area_code: Optional[str] = None
    content_type_id: Optional[str] = None
    keyword: str = ''
    page_size: int = 20

    def __post_init__(self):
        object.__setattr__(self, 'keyword', (self.keyword or '').strip())
        object.__setattr__(self, 'area_code', _clean(self.area_code))
        object.__setattr__(self, 'content_type_id', _clean(self.content_type_id))

    @property
    def is_search(self) -> bool:
        return bool(self.keyword)


def _collation_rank(char: str) -> int:
    # 한국어 정렬: 공백/기호 → 숫자 → 한글 → 라틴 → 그 외
    if char.isspace() or unicodedata.category(char).startswith(('P', 'S')):
        return 0
    if char.isdigit():
        return 1
    if '가' <= char <= '힣' or 'ᄀ' <= char <= 'ᇿ' or '㄰' <= char <= '㆏':
        return 2
    if char.isascii():
        return 3
    return 4


def korean_collation_key(text: Optional[str]) -> Tuple[Tuple[int, str], ...]:
    """
    한국어 사전순 정렬 키.
    NFC 로 정규화한 한글 음절은 코드포인트 순서가 가나다 순서와 같다.
    """
    normalized = unicodedata.normalize('NFC', text or '').casefold()
    return tuple((_collation_rank(ch), ch) for ch in normalized)
