import asyncio
import hashlib
import hmac

from websubhub.models import DeliveryStatus, PublishPayload, Subscription
from websubhub.publish import SIGNATURE_HEADER, Publisher, sign

PAYLOAD = PublishPayload().encode()


def _run(subscribers, subs, payload=PAYLOAD):
    async def run():
        async with subscribers.client() as client:
            return await Publisher(client).publish(subs, payload)

    return asyncio.run(run())


def test_fixed_payload_encoding():
    assert PAYLOAD == b'{"meep":"meep","mino":"mino"}'


def test_sign_matches_hmac_sha256():
    expected = hmac.new(b"shh", PAYLOAD, hashlib.sha256).hexdigest()
    assert sign(b"shh", PAYLOAD) == f"sha256={expected}"


def test_signature_header_only_with_secret(subscribers):
    signed = subscribers.add("https://signed.test/cb")
    plain = subscribers.add("https://plain.test/cb")
    subs = [
        Subscription.create("https://signed.test/cb", "news", secret=b"shh"),
        Subscription.create("https://plain.test/cb", "news"),
    ]

    outcomes = _run(subscribers, subs)

    assert all(o.ok for o in outcomes)
    (req,) = signed.deliveries
    assert req.content == PAYLOAD
    expected = hmac.new(b"shh", req.content, hashlib.sha256).hexdigest()
    assert req.headers[SIGNATURE_HEADER] == f"sha256={expected}"
    (req,) = plain.deliveries
    assert req.content == PAYLOAD
    assert SIGNATURE_HEADER not in req.headers


def test_one_unreachable_subscriber_does_not_stop_the_rest(subscribers):
    urls = [f"https://s{i}.test/cb" for i in range(4)]
    for url in urls:
        subscribers.add(url)
    subscribers.callbacks[urls[1]].down = True

    outcomes = _run(subscribers, [Subscription.create(u, "news") for u in urls])

    by_url = {o.callback_url: o for o in outcomes}
    assert by_url[urls[1]].status is DeliveryStatus.TRANSPORT_ERROR
    assert by_url[urls[1]].error
    for url in (urls[0], urls[2], urls[3]):
        assert by_url[url].status is DeliveryStatus.DELIVERED
        assert len(subscribers.callbacks[url].deliveries) == 1


def test_non_2xx_is_recorded_not_raised(subscribers):
    subscribers.add("https://gone.test/cb", status=410)
    subscribers.add("https://ok.test/cb", status=204)
    subs = [
        Subscription.create("https://gone.test/cb", "news"),
        Subscription.create("https://ok.test/cb", "news"),
    ]

    outcomes = _run(subscribers, subs)

    by_url = {o.callback_url: o for o in outcomes}
    assert by_url["https://gone.test/cb"].status is DeliveryStatus.REJECTED
    assert by_url["https://gone.test/cb"].http_status == 410
    assert by_url["https://ok.test/cb"].ok


def test_publish_to_nobody():
    async def run():
        import httpx

        async with httpx.AsyncClient() as client:
            return await Publisher(client).publish([], PAYLOAD)

    assert asyncio.run(run()) == []


def test_delivery_follows_redirects(subscribers):
    subscribers.add("https://old.test/cb", redirect_to="https://new.test/cb")
    moved = subscribers.add("https://new.test/cb")

    (outcome,) = _run(
        subscribers, [Subscription.create("https://old.test/cb", "news", secret=b"shh")]
    )

    assert outcome.ok
    (req,) = moved.deliveries
    assert req.method == "POST"
    assert req.content == PAYLOAD
    assert req.headers[SIGNATURE_HEADER] == sign(b"shh", PAYLOAD)
