"""Tests for the overlay engine: submission, admission bookkeeping and lookup routing."""

import pytest

from admarket.overlay.interfaces import LookupService
from admarket.schemas.overlay import LookupQuery, LookupQuestion, ReferenceListAnswer
from admarket.services.lookup_service import LookupQueryError
from admarket.services.overlay_engine import OverlayEngine, UnknownServiceError
from admarket.tests.conftest import LOOKUP_SERVICE, SPONSOR_KEY, TOPIC, p2pkh_script


class RecordingLookupService(LookupService):
    name = "ls_recording"

    def __init__(self):
        self.events = []

    async def output_added(self, txid, output_index, output_script, topic):
        self.events.append(("added", txid, output_index, topic))

    async def output_spent(self, txid, output_index, topic):
        self.events.append(("spent", txid, output_index, topic))

    async def output_deleted(self, txid, output_index, topic):
        self.events.append(("deleted", txid, output_index, topic))

    async def lookup(self, question):
        return ReferenceListAnswer(references=[])


class BrokenLookupService(RecordingLookupService):
    name = "ls_broken"

    async def output_added(self, txid, output_index, output_script, topic):
        await super().output_added(txid, output_index, output_script, topic)
        raise RuntimeError("index unavailable")


@pytest.fixture
def recorder(overlay_engine):
    service = RecordingLookupService()
    overlay_engine.lookup_services[service.name] = service
    return service


def _sponsor_question() -> LookupQuestion:
    return LookupQuestion(service=LOOKUP_SERVICE, query=LookupQuery(public_key=SPONSOR_KEY))


class TestSubmit:
    async def test_admits_and_indexes(self, overlay_engine, ad_script, make_beef):
        beef, tx = make_beef([p2pkh_script(), ad_script()])
        steak = await overlay_engine.submit(beef, [TOPIC])

        assert steak[TOPIC].outputs_to_admit == [1]
        assert steak[TOPIC].coins_to_retain == []

        stored = await overlay_engine.store.find_output(tx.txid(), 1, TOPIC)
        assert stored is not None
        assert stored.beef == beef
        assert stored.spent is False

        answer = await overlay_engine.lookup(_sponsor_question())
        assert answer.to_wire() == [{"txid": tx.txid(), "outputIndex": 1}]

    async def test_unknown_topic_skipped(self, overlay_engine, ad_script, make_beef):
        beef, _ = make_beef([ad_script()])
        steak = await overlay_engine.submit(beef, ["tm_unknown", TOPIC])
        assert list(steak) == [TOPIC]

    async def test_resubmission_notifies_once(self, overlay_engine, recorder, ad_script, make_beef):
        beef, tx = make_beef([ad_script()])
        await overlay_engine.submit(beef, [TOPIC])
        steak = await overlay_engine.submit(beef, [TOPIC])

        assert steak[TOPIC].outputs_to_admit == [0]
        assert recorder.events == [("added", tx.txid(), 0, TOPIC)]

    async def test_spending_admitted_output(self, overlay_engine, recorder, ad_script, make_beef):
        first_beef, first = make_beef([ad_script()])
        await overlay_engine.submit(first_beef, [TOPIC])

        second_beef, second = make_beef([ad_script(title="Renewed")], inputs=[(first.txid(), 0)])
        await overlay_engine.submit(second_beef, [TOPIC])

        assert ("spent", first.txid(), 0, TOPIC) in recorder.events
        assert ("deleted", first.txid(), 0, TOPIC) in recorder.events
        spent = await overlay_engine.store.find_output(first.txid(), 0, TOPIC)
        assert spent.spent is True

        # Spending does not remove the advertisement from the index
        answer = await overlay_engine.lookup(_sponsor_question())
        assert {ref["txid"] for ref in answer.to_wire()} == {first.txid(), second.txid()}

    async def test_unrelated_inputs_not_treated_as_previous_coins(self, overlay_engine, recorder, ad_script, make_beef):
        beef, _ = make_beef([ad_script()], inputs=[("ee" * 32, 0)])
        await overlay_engine.submit(beef, [TOPIC])
        assert [e[0] for e in recorder.events] == ["added"]

    async def test_nothing_admitted(self, overlay_engine, make_beef):
        beef, _ = make_beef([p2pkh_script(2)])
        steak = await overlay_engine.submit(beef, [TOPIC])
        assert steak[TOPIC].outputs_to_admit == []

    async def test_bad_end_date_leaves_siblings_indexed(self, overlay_engine, ad_script, make_beef):
        beef, tx = make_beef([
            ad_script(end_date="9999-12-31T23:59:59-01:00"),
            ad_script(title="Good"),
            ad_script(end_date="0001-01-01T00:00:00+01:00"),
        ])
        steak = await overlay_engine.submit(beef, [TOPIC])

        assert steak[TOPIC].outputs_to_admit == [0, 1, 2]
        answer = await overlay_engine.lookup(_sponsor_question())
        assert answer.to_wire() == [{"txid": tx.txid(), "outputIndex": 1}]

    async def test_failing_lookup_service_does_not_stop_indexing(self, overlay_engine, ad_script, make_beef):
        broken = BrokenLookupService()
        overlay_engine.lookup_services = {broken.name: broken, **overlay_engine.lookup_services}
        beef, tx = make_beef([ad_script(), ad_script(title="Second")])

        steak = await overlay_engine.submit(beef, [TOPIC])

        assert steak[TOPIC].outputs_to_admit == [0, 1]
        assert [e[2] for e in broken.events] == [0, 1]
        answer = await overlay_engine.lookup(_sponsor_question())
        assert {ref["outputIndex"] for ref in answer.to_wire()} == {0, 1}

    async def test_submit_route_indexes_valid_sibling(self, client, ad_script, make_beef):
        beef, tx = make_beef([ad_script(end_date="9999-12-31T23:59:59-01:00"), ad_script()])
        resp = await client.post("/api/v1/overlay/submit", json={"beef": beef.hex(), "topics": [TOPIC]})
        assert resp.status_code == 200
        assert resp.json()[TOPIC]["outputsToAdmit"] == [0, 1]

        resp = await client.post("/api/v1/overlay/lookup", json={
            "service": LOOKUP_SERVICE, "query": {"publicKey": SPONSOR_KEY},
        })
        assert resp.json() == [{"txid": tx.txid(), "outputIndex": 1}]

    async def test_unparseable_beef_raises(self, overlay_engine):
        with pytest.raises(ValueError):
            await overlay_engine.submit(b"\x00\x01\x02\x03", [TOPIC])


class TestRouting:
    async def test_lookup_unknown_service(self, overlay_engine):
        with pytest.raises(LookupQueryError):
            await overlay_engine.lookup(LookupQuestion(service="ls_nope", query=LookupQuery(find_all=True)))

    def test_get_unknown_topic_manager(self, overlay_engine):
        with pytest.raises(UnknownServiceError) as exc_info:
            overlay_engine.get_topic_manager("tm_nope")
        assert exc_info.value.kind == "topic manager"

    def test_get_known_services(self, overlay_engine):
        assert overlay_engine.get_topic_manager(TOPIC).name == TOPIC
        assert overlay_engine.get_lookup_service(LOOKUP_SERVICE).name == LOOKUP_SERVICE

    async def test_list_metadata(self, overlay_engine):
        topics = await overlay_engine.list_topic_managers()
        services = await overlay_engine.list_lookup_services()
        assert topics[TOPIC].name == "Advertisement Topic Manager"
        assert services[LOOKUP_SERVICE].name == "Advertisement Lookup Service"

    def test_engine_is_plain_object(self, overlay_engine):
        assert isinstance(overlay_engine, OverlayEngine)
        assert set(overlay_engine.topic_managers) == {TOPIC}
