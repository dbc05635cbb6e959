import io
import json
import threading

import pytest
import requests

from index_monitor.monitor import IndexMonitor, MonitorConfig


class ScriptedSource:
    """IndexSource double: pops counts / log pages in order; Exceptions in the script are raised."""

    def __init__(self, counts=(), log_pages=(), stop_event=None, stop_after=None):
        self.counts = list(counts)
        self.log_pages = list(log_pages)
        self.stop_event = stop_event
        self.stop_after = stop_after
        self.count_calls = 0
        self.log_calls = 0

    def total_records(self):
        self.count_calls += 1
        if self.stop_event is not None and self.stop_after and self.count_calls >= self.stop_after:
            self.stop_event.set()
        item = self.counts.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def get_logs(self):
        self.log_calls += 1
        item = self.log_pages.pop(0) if self.log_pages else []
        if isinstance(item, Exception):
            raise item
        return item


def log_record(ts, method, url, body=None, answer=None):
    return {
        "timestamp": ts,
        "method": method,
        "answer_code": "200",
        "url": url,
        "query_body": json.dumps(body) if body is not None else "",
        "answer": json.dumps(answer) if answer is not None else "",
        "index": "products",
    }


@pytest.fixture()
def make_monitor():
    def build(source, **overrides):
        params = dict(app_id="APPID", api_key="secret-key", index_name="products", delay=30, delta=10)
        params.update(overrides)
        out, err = io.StringIO(), io.StringIO()
        stop_event = getattr(source, "stop_event", None) or threading.Event()
        monitor = IndexMonitor(source, MonitorConfig(**params), stop_event=stop_event, out=out, err=err)
        return monitor, out, err
    return build


@pytest.fixture()
def make_response():
    def build(status, payload=None, text=""):
        r = requests.Response()
        r.status_code = status
        r._content = (json.dumps(payload) if payload is not None else text).encode("utf-8")
        r.encoding = "utf-8"
        return r
    return build
