from unittest.mock import patch

import pytest
import requests
from django.urls import reverse
from rest_framework.test import APIClient

from apps.items.services.tourapi import TourApiError
from apps.items.tests.helpers import api_payload, mock_response
from apps.items.types import TourDetail, TourImage, TourIntro, TourItem, TourPage

pytestmark = pytest.mark.usefixtures('tour_api_key')


@pytest.fixture
def api_client():
    return APIClient()


class TestTourApiProxy:
    def test_rejects_unknown_endpoint(self, client):
        response = client.get('/api/tour/deleteEverything/')

        assert response.status_code == 400
        assert response.json() == {'error': '지원하지 않는 endpoint 입니다.'}

    @patch('apps.items.views.requests.get')
    def test_injects_service_key_and_defaults(self, mock_get, client):
        payload = api_payload([{'contentid': '1'}])
        mock_get.return_value = mock_response(payload)

        response = client.get('/api/tour/areaBasedList2/', {
            'serviceKey': 'client-key', 'areaCode': '1', 'MobileApp': 'OtherApp',
        })

        assert response.status_code == 200
        assert response.json() == payload
        url = mock_get.call_args.args[0]
        params = mock_get.call_args.kwargs['params']
        assert url == 'https://apis.data.go.kr/B551011/KorService2/areaBasedList2'
        assert params['serviceKey'] == ['server-key']
        assert params['areaCode'] == ['1']
        assert params['MobileApp'] == ['OtherApp']
        assert params['MobileOS'] == ['ETC']
        assert params['_type'] == ['json']

    @patch('apps.items.views.requests.get')
    def test_upstream_error_status_is_forwarded(self, mock_get, client):
        mock_get.return_value = mock_response(None, status_code=503)

        response = client.get('/api/tour/detailCommon2/', {'contentId': '1'})

        assert response.status_code == 503
        assert response.json() == {'error': '공공 API 요청에 실패했습니다.', 'status': 503}

    @patch('apps.items.views.requests.get')
    def test_non_json_body_is_wrapped(self, mock_get, client):
        mock_get.return_value = mock_response(content_type='text/xml', text='<OpenAPI_ServiceResponse/>')

        response = client.get('/api/tour/areaCode2/')

        assert response.status_code == 200
        assert response.json() == {'raw': '<OpenAPI_ServiceResponse/>'}

    @patch('apps.items.views.requests.get')
    def test_broken_json_body_is_wrapped(self, mock_get, client):
        upstream = mock_response(text='SERVICE ERROR')
        upstream.json.side_effect = requests.exceptions.JSONDecodeError('Expecting value', 'SERVICE ERROR', 0)
        mock_get.return_value = upstream

        response = client.get('/api/tour/areaCode2/')

        assert response.status_code == 200
        assert response.json() == {'raw': 'SERVICE ERROR'}

    @patch('apps.items.views.requests.get')
    def test_transport_failure_returns_500(self, mock_get, client):
        mock_get.side_effect = requests.exceptions.Timeout()

        response = client.get('/api/tour/areaCode2/')

        assert response.status_code == 500

    def test_missing_server_key_returns_500(self, client, settings):
        settings.TOUR_API_KEY = ''

        response = client.get('/api/tour/areaCode2/')

        assert response.status_code == 500

    def test_post_is_not_allowed(self, client):
        assert client.post('/api/tour/areaCode2/').status_code == 405


class TestTourListAPI:
    PAGE = TourPage(items=(
        TourItem(content_id='100', title='서울숲', modified_time='20241101093000'),
        TourItem(content_id='200', title='남산타워', modified_time='20241015091500'),
        TourItem(content_id='300', title='광안리 해수욕장', modified_time='20241225080000'),
    ), total_count=45)

    @patch('apps.items.views.tourapi.fetch_page')
    def test_returns_sorted_page(self, mock_fetch, api_client, settings):
        settings.TOUR_LIST_PAGE_SIZE = 20
        mock_fetch.return_value = self.PAGE

        response = api_client.get(reverse('items_api:tour_list'), {'areaCode': '1', 'sort': 'name', 'page': '2'})

        data = response.json()
        assert response.status_code == 200
        assert [item['contentid'] for item in data['items']] == ['300', '200', '100']
        assert data['totalCount'] == 45
        assert data['page'] == 2
        assert data['hasMore'] is True
        assert data['sort'] == 'name'
        assert data['selectedId'] == '300'
        query, page_no = mock_fetch.call_args.args
        assert query.area_code == '1'
        assert query.page_size == 20
        assert page_no == 2

    @patch('apps.items.views.tourapi.fetch_page')
    def test_keeps_requested_selection_and_defaults_to_latest(self, mock_fetch, api_client):
        mock_fetch.return_value = self.PAGE

        data = api_client.get(reverse('items_api:tour_list'), {'selected': '200'}).json()

        assert [item['contentid'] for item in data['items']] == ['300', '100', '200']
        assert data['sort'] == 'latest'
        assert data['selectedId'] == '200'

    @patch('apps.items.views.tourapi.fetch_page')
    def test_response_is_cached(self, mock_fetch, api_client):
        mock_fetch.return_value = self.PAGE

        api_client.get(reverse('items_api:tour_list'), {'keyword': '숲'})
        api_client.get(reverse('items_api:tour_list'), {'keyword': '숲'})

        assert mock_fetch.call_count == 1

    @patch('apps.items.views.tourapi.fetch_page')
    def test_cached_page_keeps_each_requests_selection(self, mock_fetch, api_client):
        mock_fetch.return_value = self.PAGE
        url = reverse('items_api:tour_list')

        first = api_client.get(url, {'selected': '100'}).json()
        second = api_client.get(url, {'selected': '200'}).json()
        missing = api_client.get(url, {'selected': '999'}).json()

        assert mock_fetch.call_count == 1
        assert first['selectedId'] == '100'
        assert second['selectedId'] == '200'
        assert missing['selectedId'] == '300'
        assert second['items'] == first['items']

    @patch('apps.items.views.tourapi.fetch_page', return_value=TourPage())
    def test_empty_page_is_cached_without_selection(self, mock_fetch, api_client):
        url = reverse('items_api:tour_list')

        api_client.get(url, {'keyword': '없는 관광지'})
        data = api_client.get(url, {'keyword': '없는 관광지'}).json()

        assert mock_fetch.call_count == 1
        assert data['items'] == []
        assert data['selectedId'] is None
        assert data['hasMore'] is False

    @patch('apps.items.views.tourapi.fetch_page')
    def test_upstream_failure_returns_502(self, mock_fetch, api_client):
        mock_fetch.side_effect = TourApiError('API 요청 실패: 500', status=500)

        response = api_client.get(reverse('items_api:tour_list'))

        assert response.status_code == 502
        assert response.json()['message'] == 'API 요청 실패: 500'

    @pytest.mark.parametrize('page', ['0', 'abc'])
    def test_invalid_page_returns_400(self, api_client, page):
        response = api_client.get(reverse('items_api:tour_list'), {'page': page})
        assert response.status_code == 400


class TestTourDetailAPI:
    @patch('apps.items.views.tourapi.get_pet_tour_info', return_value=None)
    @patch('apps.items.views.tourapi.get_tour_images')
    @patch('apps.items.views.tourapi.get_tour_intro')
    @patch('apps.items.views.tourapi.get_tour_detail')
    def test_combines_detail_sections(self, mock_detail, mock_intro, mock_images, mock_pet, api_client):
        mock_detail.return_value = TourDetail(
            content_id='100', content_type_id='12', title='서울숲',
            homepage='<a href="http://seoulforest.or.kr">홈페이지</a>', map_x='127.03', map_y='37.54',
        )
        mock_intro.return_value = TourIntro(content_id='100', content_type_id='12', extra={'usetime': '상시'})
        mock_images.return_value = [TourImage(content_id='100', origin_url='http://img/1.jpg')]

        response = api_client.get(reverse('items_api:tour_detail', args=['100']))

        data = response.json()
        assert response.status_code == 200
        assert data['detail']['title'] == '서울숲'
        assert data['detail']['homepageUrl'] == 'http://seoulforest.or.kr'
        assert data['detail']['coordinates'] == {'lng': 127.03, 'lat': 37.54}
        assert data['intro']['usetime'] == '상시'
        assert data['images'] == [{'contentid': '100', 'originimgurl': 'http://img/1.jpg'}]
        assert data['pet'] is None
        mock_intro.assert_called_once_with('100', '12')

    @patch('apps.items.views.tourapi.get_tour_detail', return_value=None)
    def test_missing_detail_returns_404(self, mock_detail, api_client):
        response = api_client.get(reverse('items_api:tour_detail', args=['999']))
        assert response.status_code == 404

    @patch('apps.items.views.tourapi.get_tour_detail')
    def test_upstream_failure_returns_502(self, mock_detail, api_client):
        mock_detail.side_effect = TourApiError('API 에러: 99 - UNKNOWN')

        response = api_client.get(reverse('items_api:tour_detail', args=['100']))

        assert response.status_code == 502
