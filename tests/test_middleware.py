import asyncio

from app.api.middleware import AbuseGuardMiddleware


def booking_scope(ip="203.0.113.7", headers=()):
    return {
        "type": "http",
        "method": "POST",
        "path": "/api/v1/bookings",
        "raw_path": b"/api/v1/bookings",
        "query_string": b"",
        "headers": list(headers),
        "client": (ip, 51234),
    }


class Recorder:
    def __init__(self, chunks):
        self.chunks = list(chunks)
        self.reads = 0
        self.sent = []
        self.downstream_called = False

    async def receive(self):
        self.reads += 1
        if self.chunks:
            body = self.chunks.pop(0)
            return {"type": "http.request", "body": body, "more_body": bool(self.chunks)}
        return {"type": "http.disconnect"}

    async def send(self, message):
        self.sent.append(message)

    async def downstream(self, scope, receive, send):
        self.downstream_called = True
        message = await receive()
        await send({"type": "http.response.start", "status": 201, "headers": []})
        await send({"type": "http.response.body", "body": message["body"]})

    @property
    def status(self):
        return self.sent[0]["status"]


def run(middleware, scope, rec):
    asyncio.run(middleware(scope, rec.receive, rec.send))


class TestAbuseGuardMiddleware:
    def test_body_is_replayed_to_the_route(self, guard):
        rec = Recorder([b'{"booking": ', b'{"email": "a@uni.edu"}}'])
        run(AbuseGuardMiddleware(rec.downstream, guard=guard), booking_scope(), rec)
        assert rec.status == 201
        assert rec.sent[1]["body"] == b'{"booking": {"email": "a@uni.edu"}}'

    def test_blocked_client_body_is_never_read(self, guard):
        guard.blocklist.add("192.0.2.66")
        rec = Recorder([b"x" * 1024] * 1000)
        run(AbuseGuardMiddleware(rec.downstream, guard=guard), booking_scope(ip="192.0.2.66"), rec)
        assert rec.status == 429
        assert rec.reads == 0
        assert not rec.downstream_called

    def test_chunked_body_over_the_cap_stops_reading(self, guard):
        # No Content-Length: the cap has to be enforced while reading.
        rec = Recorder([b"x" * 40 * 1024] * 10)
        run(AbuseGuardMiddleware(rec.downstream, guard=guard, max_body_bytes=64 * 1024), booking_scope(), rec)
        assert rec.status == 413
        assert rec.reads == 2
        assert not rec.downstream_called

    def test_declared_length_over_the_cap(self, guard):
        rec = Recorder([b"{}"])
        scope = booking_scope(headers=[(b"content-length", b"70000")])
        run(AbuseGuardMiddleware(rec.downstream, guard=guard, max_body_bytes=64 * 1024), scope, rec)
        assert rec.status == 413
        assert rec.reads == 0

    def test_oversized_bodies_do_not_count_against_throttles(self, guard, store):
        rec = Recorder([b"x" * 70_000])
        run(AbuseGuardMiddleware(rec.downstream, guard=guard), booking_scope(), rec)
        assert rec.status == 413
        assert len(store) == 0
