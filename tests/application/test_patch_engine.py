"""Patch engine behaviour: presence test, append-only writes, failure states."""

from __future__ import annotations

import json
from pathlib import Path

from hypothesis import given, settings
from hypothesis import strategies as st

from obs_service_patcher.adapters.file_store import AtomicFileStore
from obs_service_patcher.application.patch import PatchEngine, PatchStatus, ensure_service
from obs_service_patcher.domain.document import ServiceDocument
from obs_service_patcher.domain.errors import FileIOError
from obs_service_patcher.domain.service import Service
from tests.support import GLIMESH_DESCRIPTOR, TWITCH_DOCUMENT, encode, glimesh

JSON_SCALAR = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(),
    st.floats(allow_nan=False, allow_infinity=False),
    st.text(max_size=8),
)
JSON_VALUE = st.recursive(
    JSON_SCALAR,
    lambda children: st.one_of(
        st.lists(children, max_size=3),
        st.dictionaries(st.text(max_size=5), children, max_size=3),
    ),
    max_leaves=10,
)
ROOT_EXTRAS = st.dictionaries(
    st.text(min_size=1, max_size=8).filter(lambda key: key not in {"services", "format_version"}),
    JSON_VALUE,
    max_size=4,
)
SERVICE_EXTRAS = st.dictionaries(
    st.text(min_size=1, max_size=8).filter(lambda key: key != "name"),
    JSON_VALUE,
    max_size=4,
)


class FailingWriteStore(AtomicFileStore):
    def replace_bytes(self, path: Path, payload: bytes) -> None:
        raise FileIOError(f"Cannot write {path}: permission denied")


def _write(tmp_path: Path, document, name: str = "services.json") -> Path:
    target = tmp_path / name
    target.write_bytes(document if isinstance(document, bytes) else encode(document))
    return target


def test_concrete_twitch_glimesh_scenario(tmp_path: Path) -> None:
    target = _write(tmp_path, TWITCH_DOCUMENT)

    result = PatchEngine(AtomicFileStore()).patch(target, glimesh())

    assert result.status is PatchStatus.PATCHED and result.ok
    tree = json.loads(target.read_text(encoding="utf-8"))
    assert tree["format_version"] == 1
    assert tree["services"] == [TWITCH_DOCUMENT["services"][0], GLIMESH_DESCRIPTOR]


def test_second_patch_is_a_no_op(tmp_path: Path) -> None:
    target = _write(tmp_path, TWITCH_DOCUMENT)
    engine = PatchEngine(AtomicFileStore())
    engine.patch(target, glimesh())
    once = target.read_bytes()

    result = engine.patch(target, glimesh())

    assert result.status is PatchStatus.ALREADY_PRESENT and result.ok
    assert result.error is None
    assert target.read_bytes() == once


def test_substring_elsewhere_does_not_count_as_present(tmp_path: Path) -> None:
    document = {
        "format_version": 1,
        "_comment": "Glimesh",
        "services": [{"name": "Twitch", "notes": "not Glimesh", "servers": []}],
    }
    target = _write(tmp_path, document)

    result = PatchEngine(AtomicFileStore()).patch(target, glimesh())

    assert result.status is PatchStatus.PATCHED
    names = [entry["name"] for entry in json.loads(target.read_text(encoding="utf-8"))["services"]]
    assert names == ["Twitch", "Glimesh"]


def test_existing_entry_is_not_replaced(tmp_path: Path) -> None:
    document = {"format_version": 1, "services": [{"name": "Glimesh", "servers": [], "local": "edit"}]}
    target = _write(tmp_path, document)
    before = target.read_bytes()

    result = PatchEngine(AtomicFileStore()).patch(target, glimesh())

    assert result.status is PatchStatus.ALREADY_PRESENT
    assert target.read_bytes() == before


def test_unreadable_file_is_read_failed(tmp_path: Path) -> None:
    result = PatchEngine(AtomicFileStore()).patch(tmp_path / "deleted.json", glimesh())
    assert result.status is PatchStatus.READ_FAILED
    assert not result.ok
    assert "deleted.json" in (result.error or "")


def test_malformed_file_is_decode_failed_and_untouched(tmp_path: Path) -> None:
    target = _write(tmp_path, b'{"format_version": 1, "services": [')

    result = PatchEngine(AtomicFileStore()).patch(target, glimesh())

    assert result.status is PatchStatus.DECODE_FAILED
    assert target.read_bytes() == b'{"format_version": 1, "services": ['


def test_write_failure_is_reported(tmp_path: Path) -> None:
    target = _write(tmp_path, TWITCH_DOCUMENT)
    before = target.read_bytes()

    result = PatchEngine(FailingWriteStore()).patch(target, glimesh())

    assert result.status is PatchStatus.WRITE_FAILED
    assert "permission denied" in (result.error or "")
    assert target.read_bytes() == before


def test_write_is_skipped_when_already_present(tmp_path: Path) -> None:
    target = _write(tmp_path, {"services": [GLIMESH_DESCRIPTOR]})
    result = PatchEngine(FailingWriteStore()).patch(target, glimesh())
    assert result.status is PatchStatus.ALREADY_PRESENT


def test_ensure_service_is_case_sensitive() -> None:
    doc = ServiceDocument.from_bytes(encode({"services": [{"name": "GLIMESH"}]}))
    assert ensure_service(doc, glimesh()) is True
    assert doc.service_names() == ["GLIMESH", "Glimesh"]


@settings(max_examples=75, deadline=None)
@given(ROOT_EXTRAS, SERVICE_EXTRAS, SERVICE_EXTRAS)
def test_unknown_fields_survive_patch(root_extras, first_extras, second_extras) -> None:
    tree = dict(root_extras)
    tree["format_version"] = 1
    tree["services"] = [{**first_extras, "name": "Twitch"}, {"name": "YouTube", **second_extras}]

    doc = ServiceDocument.from_bytes(json.dumps(tree).encode("utf-8"))
    assert ensure_service(doc, glimesh())
    patched = json.loads(doc.to_bytes())

    assert list(patched) == list(tree)
    assert {key: value for key, value in patched.items() if key != "services"} == {
        key: value for key, value in tree.items() if key != "services"
    }
    assert patched["services"][:-1] == tree["services"]
    assert [list(entry) for entry in patched["services"][:-1]] == [list(entry) for entry in tree["services"]]
    assert patched["services"][-1] == GLIMESH_DESCRIPTOR


@settings(max_examples=50, deadline=None)
@given(ROOT_EXTRAS, st.lists(st.sampled_from(["Twitch", "YouTube", "Glimesh", "Restream"]), max_size=5, unique=True))
def test_patch_is_idempotent_and_names_stay_unique(root_extras, names) -> None:
    tree = {**root_extras, "format_version": 2, "services": [{"name": name} for name in names]}
    service = Service.from_mapping(GLIMESH_DESCRIPTOR)

    once = ServiceDocument.from_bytes(json.dumps(tree).encode("utf-8"))
    ensure_service(once, service)
    encoded_once = once.to_bytes()

    twice = ServiceDocument.from_bytes(encoded_once)
    assert ensure_service(twice, service) is False
    assert twice.to_bytes() == encoded_once

    patched_names = once.service_names()
    assert patched_names.count("Glimesh") == 1
    assert len(patched_names) == len(set(patched_names))
    assert json.loads(encoded_once)["format_version"] == 2


def test_null_services_list_is_patched(tmp_path: Path) -> None:
    target = _write(tmp_path, b'{"format_version": 1, "services": null}')

    result = PatchEngine(AtomicFileStore()).patch(target, glimesh())

    assert result.status is PatchStatus.PATCHED
    assert json.loads(target.read_bytes()) == {"format_version": 1, "services": [GLIMESH_DESCRIPTOR]}


def test_out_of_range_number_is_decode_failed_and_untouched(tmp_path: Path) -> None:
    payload = b'{"format_version": 1, "limit": 1e400, "services": []}'
    target = _write(tmp_path, payload)

    result = PatchEngine(AtomicFileStore()).patch(target, glimesh())

    assert result.status is PatchStatus.DECODE_FAILED
    assert target.read_bytes() == payload


def test_unencodable_text_is_encode_failed_and_untouched(tmp_path: Path) -> None:
    payload = b'{"services": [{"name": "Twitch", "x": "\\ud800"}]}'
    target = _write(tmp_path, payload)

    result = PatchEngine(AtomicFileStore()).patch(target, glimesh())

    assert result.status is PatchStatus.ENCODE_FAILED
    assert not result.ok
    assert target.read_bytes() == payload


def test_unencodable_text_is_left_alone_when_already_present(tmp_path: Path) -> None:
    target = _write(tmp_path, b'{"services": [{"name": "Glimesh", "x": "\\ud800"}]}')
    result = PatchEngine(AtomicFileStore()).patch(target, glimesh())
    assert result.status is PatchStatus.ALREADY_PRESENT
