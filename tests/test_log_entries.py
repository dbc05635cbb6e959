from index_monitor.log_entries import (
    ADD,
    BATCH,
    CLEAR,
    DELETE,
    OTHER,
    UPDATE,
    newer_than,
    newest_timestamp,
    parse_log,
    parse_logs,
)

from conftest import log_record

TS = "2024-05-01T10:00:00Z"


def test_add_object_takes_id_from_answer():
    e = parse_log(log_record(TS, "POST", "/1/indexes/products", answer={"objectID": "123", "taskID": 1}))
    assert (e.kind, e.object_ids) == (ADD, ("123",))


def test_put_object_is_update():
    e = parse_log(log_record(TS, "PUT", "/1/indexes/products/sku%2F1"))
    assert (e.kind, e.object_ids) == (UPDATE, ("sku/1",))


def test_partial_update():
    e = parse_log(log_record(TS, "POST", "/1/indexes/products/sku-1/partial?createIfNotExists=true"))
    assert (e.kind, e.object_ids) == (UPDATE, ("sku-1",))


def test_delete_object():
    e = parse_log(log_record(TS, "DELETE", "/1/indexes/products/sku-1"))
    assert (e.kind, e.object_ids) == (DELETE, ("sku-1",))


def test_clear_and_delete_by_query():
    assert parse_log(log_record(TS, "POST", "/1/indexes/products/clear")).kind == CLEAR
    assert parse_log(log_record(TS, "POST", "/1/indexes/products/deleteByQuery")).kind == DELETE


def test_settings_change_is_other():
    assert parse_log(log_record(TS, "PUT", "/1/indexes/products/settings")).kind == OTHER
    assert parse_log(log_record(TS, "GET", "/1/logs")).kind == OTHER


def test_batch_groups_actions_and_fills_ids_from_answer():
    body = {"requests": [
        {"action": "addObject", "body": {"name": "no id yet"}},
        {"action": "addObject", "body": {"objectID": "b"}},
        {"action": "partialUpdateObject", "body": {"objectID": "c"}},
        {"action": "deleteObject", "body": {"objectID": "d"}},
    ]}
    answer = {"taskID": 9, "objectIDs": ["gen-1", "b", "c", "d"]}
    e = parse_log(log_record(TS, "POST", "/1/indexes/products/batch", body=body, answer=answer))

    assert e.kind == BATCH
    assert e.actions == ((ADD, ("gen-1", "b")), (UPDATE, ("c",)), (DELETE, ("d",)))
    assert e.object_ids == ("gen-1", "b", "c", "d")


def test_multi_index_batch_keeps_only_monitored_index():
    body = {"requests": [
        {"action": "addObject", "indexName": "products", "body": {"objectID": "p1"}},
        {"action": "addObject", "indexName": "orders", "body": {"objectID": "o1"}},
    ]}
    e = parse_log(log_record(TS, "POST", "/1/indexes/*/batch", body=body), index_name="products")
    assert e.actions == ((ADD, ("p1",)),)


def test_truncated_batch_body_falls_back_to_answer_ids():
    log = log_record(TS, "POST", "/1/indexes/products/batch", answer={"objectIDs": ["x", "y"]})
    log["query_body"] = '{"requests":[{"action":"addObj'
    e = parse_log(log)
    assert (e.kind, e.actions, e.object_ids) == (BATCH, (), ("x", "y"))


def test_newer_than_filters_and_sorts():
    logs = [
        log_record("2024-05-01T10:00:03Z", "DELETE", "/1/indexes/p/c"),
        log_record("2024-05-01T10:00:01Z", "DELETE", "/1/indexes/p/a"),
        log_record("2024-05-01T10:00:02Z", "DELETE", "/1/indexes/p/b"),
    ]
    entries = parse_logs(logs)

    fresh = newer_than(entries, "2024-05-01T10:00:01Z")

    assert [e.object_ids for e in fresh] == [("b",), ("c",)]
    assert newest_timestamp(entries) == "2024-05-01T10:00:03Z"
    assert newest_timestamp([], "2024-01-01T00:00:00Z") == "2024-01-01T00:00:00Z"


def test_newer_than_without_cursor_keeps_all_timestamped():
    entries = parse_logs([log_record(TS, "DELETE", "/1/indexes/p/a"), {"url": "/1/indexes/p/b"}])
    assert len(newer_than(entries, None)) == 1


def test_truncated_batch_ignores_non_list_answer_ids():
    log = log_record(TS, "POST", "/1/indexes/products/batch", answer={"objectIDs": "abc"})
    log["query_body"] = '{"requests":[{"action":"addObj'
    e = parse_log(log)
    assert (e.kind, e.object_ids) == (BATCH, ())
