from unittest.mock import MagicMock

import requests

from apps.items.types import TourItem


def make_tour(content_id, title='', modified_time='', **extra):
    return TourItem(content_id=content_id, title=title, modified_time=modified_time, **extra)


def api_payload(items=None, total_count=None, result_code='0000', result_msg='OK'):
    """KorService2 응답 형태의 dict"""
    body = {'numOfRows': 10, 'pageNo': 1, 'totalCount': total_count or 0}
    if items is not None:
        body['items'] = {'item': items}
        if total_count is None:
            body['totalCount'] = len(items) if isinstance(items, list) else 1
    else:
        body['items'] = ''
    return {'response': {'header': {'resultCode': result_code, 'resultMsg': result_msg}, 'body': body}}


def mock_response(payload=None, status_code=200, content_type='application/json', text=''):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.headers = {'Content-Type': content_type}
    response.text = text
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=response)
    return response
