"""Tests for run sanitization and the RunStore."""

import re

import pytest

from convotree.models import Role, Turn
from convotree.runs.store import RunStore, generate_run_id, runs_equal, sanitize_runs, turns_equal
from tests.fixtures import make_run, make_turn, why_runs


class TestSanitizeRuns:
    def test_none_gives_empty(self):
        assert sanitize_runs(None) == []

    def test_accepts_dicts(self):
        runs = sanitize_runs([
            {"id": "a", "turns": [{"role": "user", "content": "Hi"},
                                  {"role": "assistant", "content": "Hello", "model": "m"}]},
        ])
        assert runs[0].turns[1].role == Role.ASSISTANT
        assert runs[0].turns[1].model == "m"

    def test_trims_content(self):
        runs = sanitize_runs([{"id": "a", "turns": [{"role": "user", "content": "  Hi\n"}]}])
        assert runs[0].turns[0].content == "Hi"

    def test_blank_model_becomes_none(self):
        runs = sanitize_runs([{"id": "a", "turns": [{"role": "user", "content": "Hi", "model": ""}]}])
        assert runs[0].turns[0].model is None

    def test_drops_whole_run_on_bad_turn(self):
        runs = sanitize_runs([
            {"id": "blank", "turns": [{"role": "user", "content": "Hi"},
                                      {"role": "assistant", "content": "   "}]},
            {"id": "role", "turns": [{"role": "system", "content": "Hi"}]},
            {"id": "hole", "turns": [{"role": "user", "content": "Hi"}, None]},
            {"id": "ok", "turns": [{"role": "user", "content": "Hi"}]},
        ])
        assert [r.id for r in runs] == ["ok"]

    def test_drops_malformed_runs(self):
        runs = sanitize_runs([
            None,
            {"turns": [{"role": "user", "content": "Hi"}]},
            {"id": "no-turns"},
            {"id": "empty", "turns": []},
            {"id": "ok", "turns": [{"role": "user", "content": "Hi"}]},
        ])
        assert [r.id for r in runs] == ["ok"]

    def test_keeps_order(self):
        assert [r.id for r in sanitize_runs(why_runs())] == ["A", "B"]

    @pytest.mark.parametrize("model", [123, {}, ["m"], True])
    def test_drops_run_with_non_string_model(self, model):
        runs = sanitize_runs([
            {"id": "x", "turns": [{"role": "user", "content": "Hi", "model": model}]},
            {"id": "y", "turns": [{"role": "user", "content": "Hi"}]},
        ])
        assert [r.id for r in runs] == ["y"]

    def test_repeated_id_gets_fresh_id(self):
        runs = sanitize_runs([
            {"id": "x", "turns": [{"role": "user", "content": "Q"}]},
            {"id": "x", "turns": [{"role": "user", "content": "Other"}]},
        ])
        assert runs[0].id == "x"
        assert runs[1].id != "x"
        assert runs[1].id.startswith("run_")
        assert runs[1].turns[0].content == "Other"


class TestEquality:
    def test_turns_equal_ignores_model(self):
        assert turns_equal(
            [make_turn("assistant", "Same", "m1")],
            [make_turn("assistant", "Same", "m2")],
        )

    def test_turns_equal_checks_role(self):
        assert not turns_equal([make_turn("user", "Same")], [make_turn("assistant", "Same")])

    def test_turns_equal_checks_length(self):
        assert not turns_equal([make_turn("user", "A")], [])

    def test_runs_equal_checks_ids(self):
        a = [make_run("x", ("user", "Hi"))]
        b = [make_run("y", ("user", "Hi"))]
        assert not runs_equal(a, b)
        assert runs_equal(a, [make_run("x", ("user", "Hi"))])


class TestGenerateRunId:
    def test_format(self):
        assert re.fullmatch(r"run_\d+_[0-9a-z]{6}", generate_run_id())

    def test_unique(self):
        assert len({generate_run_id() for _ in range(50)}) == 50


class TestRunStore:
    def test_set_bumps_version(self):
        store = RunStore()
        assert store.set(why_runs()) is True
        assert store.version == 1
        assert len(store) == 2

    def test_set_unchanged_is_noop(self):
        store = RunStore()
        store.set(why_runs())
        assert store.set(why_runs()) is False
        assert store.version == 1

    def test_model_only_change_is_noop(self):
        store = RunStore()
        store.set(why_runs())
        retagged = why_runs()
        retagged[0].turns[1].model = "other"
        assert store.set(retagged) is False

    def test_contains_turns(self):
        store = RunStore()
        store.set(why_runs())
        assert store.contains_turns([make_turn("user", "Why?"), make_turn("assistant", "Because Y")])
        assert not store.contains_turns([make_turn("user", "Why?")])

    def test_contains_turns_can_exclude_a_run(self):
        store = RunStore()
        store.set(why_runs())
        turns = [make_turn("user", "Why?"), make_turn("assistant", "Because X")]
        assert not store.contains_turns(turns, exclude="A")
        assert store.contains_turns(turns, exclude="B")

    def test_append(self):
        store = RunStore()
        store.set(why_runs())
        store.append(make_run("C", ("user", "How?")))
        assert [r.id for r in store.runs] == ["A", "B", "C"]

    def test_remove(self):
        store = RunStore()
        store.set(why_runs())
        assert store.remove(["A", "missing"]) == 1
        assert [r.id for r in store.runs] == ["B"]
        assert store.remove(["missing"]) == 0

    def test_replace_turn_touches_one_run(self):
        store = RunStore()
        store.set(why_runs())
        assert store.replace_turn("A", 1, Turn(role=Role.ASSISTANT, content="New", model="edited"))
        assert store.get("A").turns[1].content == "New"
        assert store.get("B").turns[1].content == "Because Y"

    def test_replace_turn_out_of_range(self):
        store = RunStore()
        store.set(why_runs())
        assert store.replace_turn("A", 5, make_turn("user", "x")) is False
        assert store.replace_turn("missing", 0, make_turn("user", "x")) is False

    def test_clear(self):
        store = RunStore()
        store.set(why_runs())
        store.clear()
        assert store.runs == []
        assert store.version == 2
