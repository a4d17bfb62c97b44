from __future__ import annotations

import datetime as dt
from unittest.mock import patch

import httpx
import pytest
import pytz

from salonbook.domain import TimeInterval
from salonbook.external_calendar import HttpBusySource

URL = "http://calendar.local/freebusy"
DAY = dt.date(2024, 6, 1)


def _response(payload: object, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=payload, request=httpx.Request("GET", URL))


def _at(hh: int, mm: int = 0) -> dt.datetime:
    return dt.datetime(2024, 6, 1, hh, mm, tzinfo=pytz.UTC)


def test_plain_busy_list_is_parsed() -> None:
    payload = {"busy": [{"start": "2024-06-01T10:00:00Z", "end": "2024-06-01T11:00:00Z"}]}

    with patch("salonbook.external_calendar.httpx.Client.get", return_value=_response(payload)) as get:
        intervals = HttpBusySource(URL)(DAY)

    assert intervals == [TimeInterval(_at(10), _at(11))]
    assert get.call_args.kwargs["params"] == {"date": "2024-06-01"}


def test_google_freebusy_shape_is_flattened() -> None:
    payload = {
        "calendars": {
            "salon@example.com": {"busy": [{"start": "2024-06-01T09:00:00Z", "end": "2024-06-01T09:30:00Z"}]},
            "staff@example.com": {"busy": [{"start": "2024-06-01T15:00:00Z", "end": "2024-06-01T16:00:00Z"}]},
        }
    }

    with patch("salonbook.external_calendar.httpx.Client.get", return_value=_response(payload)):
        intervals = HttpBusySource(URL)(DAY)

    assert intervals == [TimeInterval(_at(9), _at(9, 30)), TimeInterval(_at(15), _at(16))]


def test_naive_times_use_source_time_zone_and_empty_ranges_are_dropped() -> None:
    tz = pytz.timezone("America/Sao_Paulo")
    payload = {
        "busy": [
            {"start": "2024-06-01T10:00:00", "end": "2024-06-01T10:30:00"},
            {"start": "2024-06-01T12:00:00", "end": "2024-06-01T12:00:00"},
        ]
    }

    with patch("salonbook.external_calendar.httpx.Client.get", return_value=_response(payload)):
        intervals = HttpBusySource(URL, tz=tz)(DAY)

    assert intervals == [TimeInterval(_at(13), _at(13, 30))]


def test_http_error_is_raised_to_the_caller() -> None:
    with patch("salonbook.external_calendar.httpx.Client.get", return_value=_response({}, status_code=503)):
        with pytest.raises(httpx.HTTPStatusError):
            HttpBusySource(URL)(DAY)
