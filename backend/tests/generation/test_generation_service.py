"""Tests for GenerationService: fan-out, failure isolation, pending counts."""

import asyncio

import pytest

from convotree.generation.presets import GenerateRequestItem
from convotree.generation.service import GenerationService
from convotree.providers.registry import clear_providers
from convotree.trees.builder import node_key, option_id
from tests.fixtures import BlockingProvider, FakeProvider


def _root(service):
    return service.tree.layers[0][0]


def _make_service(tree_service, provider, **kwargs):
    return GenerationService(tree_service, provider_lookup=lambda model: provider, **kwargs)


class TestFanOut:
    async def test_each_reply_becomes_an_option(self, why_service):
        provider = FakeProvider(["Reply one", "Reply two"])
        gen = _make_service(why_service, provider)
        root = _root(why_service)
        why = root.options[0]

        outcome = await gen.generate_next(root, why, [GenerateRequestItem(model="m-new", count=2)])

        assert outcome.requested == 2
        assert outcome.succeeded == 2
        assert outcome.failed == 0
        child_id = node_key(1, why.next_prefix)
        assert outcome.option_ids == [
            option_id(child_id, "Reply one"),
            option_id(child_id, "Reply two"),
        ]
        child = why_service.get_node(child_id)
        assert [o.content for o in child.options] == [
            "Because X", "Because Y", "Reply one", "Reply two",
        ]
        assert child.options[2].models == ["m-new"]

    async def test_sends_the_branch_context(self, why_service):
        provider = FakeProvider()
        gen = _make_service(why_service, provider)
        root = _root(why_service)
        await gen.generate_next(root, root.options[0], [GenerateRequestItem(model="m")])
        assert [(m.role, m.content) for m in provider.calls[0].messages] == [("user", "Why?")]

    async def test_multiple_models(self, why_service):
        provider = FakeProvider(["a", "b", "c"])
        gen = _make_service(why_service, provider)
        root = _root(why_service)
        outcome = await gen.generate_next(root, root.options[0], [
            GenerateRequestItem(model="m1", count=1),
            GenerateRequestItem(model="m2", count=2),
        ])
        assert outcome.requested == 3
        assert sorted(c.model for c in provider.calls) == ["m1", "m2", "m2"]

    async def test_identical_replies_merge(self, why_service):
        provider = FakeProvider(["Same thing"])
        gen = _make_service(why_service, provider)
        root = _root(why_service)
        outcome = await gen.generate_next(root, root.options[0], [GenerateRequestItem(model="m", count=3)])
        assert outcome.succeeded == 3
        assert len(outcome.option_ids) == 1
        assert len(why_service.runs) == 3

    async def test_reply_to_deeper_user_turn(self, why_service):
        reply = why_service.path()[1].node
        why_service.add_next_turn(reply, reply.options[0], "Go on")
        follow_up = why_service.path()[2].node

        provider = FakeProvider(["Deeper"])
        gen = _make_service(why_service, provider)
        outcome = await gen.generate_next(
            follow_up, follow_up.options[0], [GenerateRequestItem(model="m")]
        )

        assert outcome.succeeded == 1
        assert [m.content for m in provider.calls[0].messages] == ["Why?", "Because X", "Go on"]
        assert [t.content for t in why_service.runs[-1].turns] == [
            "Why?", "Because X", "Go on", "Deeper",
        ]


class TestFailureIsolation:
    async def test_one_failure_does_not_stop_siblings(self, why_service):
        provider = FakeProvider(["r0", "r1", "r2"], fail_on=lambda i: i == 1)
        gen = _make_service(why_service, provider)
        root = _root(why_service)
        outcome = await gen.generate_next(root, root.options[0], [GenerateRequestItem(model="m", count=3)])
        assert outcome.succeeded == 2
        assert outcome.failed == 1
        assert "provider failure #1" in outcome.errors[0]
        assert len(why_service.runs) == 4

    async def test_empty_reply_counts_as_failure(self, why_service):
        provider = FakeProvider(["   "])
        gen = _make_service(why_service, provider)
        root = _root(why_service)
        outcome = await gen.generate_next(root, root.options[0], [GenerateRequestItem(model="m")])
        assert outcome.failed == 1
        assert "Empty response" in outcome.errors[0]
        assert len(why_service.runs) == 2

    async def test_missing_api_key_reported(self, why_service):
        clear_providers()
        gen = GenerationService(why_service)
        root = _root(why_service)
        outcome = await gen.generate_next(root, root.options[0], [GenerateRequestItem(model="gpt-4o")])
        assert outcome.failed == 1
        assert "Missing openai API key" in outcome.errors[0]


class TestSkips:
    async def test_no_option(self, why_service):
        gen = _make_service(why_service, FakeProvider())
        outcome = await gen.generate_next(_root(why_service), None, [GenerateRequestItem(model="m")])
        assert outcome.skipped_reason is not None
        assert outcome.requested == 0

    async def test_assistant_node_cannot_be_followed_by_generation(self, why_service):
        provider = FakeProvider()
        gen = _make_service(why_service, provider)
        reply = why_service.path()[1].node
        outcome = await gen.generate_next(reply, reply.options[0], [GenerateRequestItem(model="m")])
        assert outcome.skipped_reason is not None
        assert provider.calls == []

    @pytest.mark.parametrize("requests", [[], [GenerateRequestItem(model="m", count=0)]])
    async def test_no_positive_requests(self, why_service, requests):
        provider = FakeProvider()
        gen = _make_service(why_service, provider)
        root = _root(why_service)
        outcome = await gen.generate_next(root, root.options[0], requests)
        assert outcome.skipped_reason == "No generation requests"
        assert provider.calls == []


class TestSampling:
    async def test_gpt5_temperature_forced(self, why_service):
        provider = FakeProvider()
        gen = _make_service(why_service, provider)
        root = _root(why_service)
        await gen.generate_next(root, root.options[0], [
            GenerateRequestItem(model="gpt-5-mini"), GenerateRequestItem(model="gpt-4o"),
        ], temperature=1.5)
        temps = {c.model: c.sampling_params.temperature for c in provider.calls}
        assert temps == {"gpt-5-mini": 1.0, "gpt-4o": 1.5}

    async def test_default_temperature(self, why_service):
        provider = FakeProvider()
        gen = _make_service(why_service, provider, default_temperature=0.7)
        root = _root(why_service)
        await gen.generate_next(root, root.options[0], [GenerateRequestItem(model="m")])
        assert provider.calls[0].sampling_params.temperature == 0.7

    async def test_system_prompt_sent_first(self, why_service):
        provider = FakeProvider()
        gen = _make_service(why_service, provider, system_prompt="Be brief.")
        root = _root(why_service)
        await gen.generate_next(root, root.options[0], [GenerateRequestItem(model="m")])
        assert provider.calls[0].messages[0].role == "system"
        assert provider.calls[0].messages[0].content == "Be brief."


class TestPending:
    async def test_pending_tracks_in_flight_calls(self, why_service):
        provider = BlockingProvider()
        gen = _make_service(why_service, provider)
        root = _root(why_service)
        why = root.options[0]

        task = asyncio.create_task(
            gen.generate_next(root, why, [GenerateRequestItem(model="m", count=2)])
        )
        while provider.started < 2:
            await asyncio.sleep(0)

        assert gen.pending(root.id, why.id) == 2
        assert gen.pending_map == {f"{root.id}:{why.id}": 2}

        provider.release()
        outcome = await task
        assert outcome.succeeded == 2
        assert gen.pending(root.id, why.id) == 0
        assert gen.pending_map == {}

    async def test_pending_cleared_after_failures(self, why_service):
        provider = FakeProvider(fail_on=lambda i: True)
        gen = _make_service(why_service, provider)
        root = _root(why_service)
        await gen.generate_next(root, root.options[0], [GenerateRequestItem(model="m", count=2)])
        assert gen.pending_map == {}


class TestLimits:
    async def test_unbounded_by_default(self, why_service):
        provider = FakeProvider(["a", "b", "c"], delay=0.01)
        gen = _make_service(why_service, provider)
        root = _root(why_service)
        await gen.generate_next(root, root.options[0], [GenerateRequestItem(model="m", count=3)])
        assert provider.max_in_flight == 3

    async def test_max_concurrency(self, why_service):
        provider = FakeProvider(["a", "b", "c"], delay=0.01)
        gen = _make_service(why_service, provider, max_concurrency=1)
        root = _root(why_service)
        outcome = await gen.generate_next(root, root.options[0], [GenerateRequestItem(model="m", count=3)])
        assert provider.max_in_flight == 1
        assert outcome.succeeded == 3

    async def test_timeout_counts_as_failure(self, why_service):
        provider = BlockingProvider()
        gen = _make_service(why_service, provider, timeout_seconds=0.01)
        root = _root(why_service)
        outcome = await gen.generate_next(root, root.options[0], [GenerateRequestItem(model="m", count=2)])
        assert outcome.failed == 2
        assert outcome.succeeded == 0
        assert gen.pending_map == {}
        assert len(why_service.runs) == 2
