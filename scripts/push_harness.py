"""Send a fake pub/sub push to a running relay and print the replies.

Start the relay locally with the mock client first:
    OUTGOING_MESSAGES_TOPIC=pong DELIVERY_CLIENT=mock relaybridge

Run: python scripts/push_harness.py [--base http://127.0.0.1:8080] [--data ping]
"""
import argparse
import base64

import httpx


def push_body(data: bytes, source: str, subject: str) -> dict:
    return {
        "message": {
            "data": base64.b64encode(data).decode("ascii"),
            "attributes": {"source": source, "subject": subject},
            "messageId": "harness-1",
        },
        "subscription": "projects/local/subscriptions/harness",
    }


def run(base: str, data: bytes, source: str, subject: str) -> None:
    with httpx.Client(base_url=base, timeout=15.0) as client:
        r = client.get("/")
        print("health:", r.status_code, r.text)

        r = client.post("/", json=push_body(data, source, subject))
        print("push:", r.status_code, r.text)

        # missing subject should be rejected
        body = push_body(data, source, subject)
        del body["message"]["attributes"]["subject"]
        r = client.post("/", json=body)
        print("malformed push:", r.status_code, r.text)


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--base", default="http://127.0.0.1:8080")
    parser.add_argument("--data", default="ping")
    parser.add_argument("--source", default="player-1")
    parser.add_argument("--subject", default="player-2")
    args = parser.parse_args()
    run(args.base, args.data.encode("utf-8"), args.source, args.subject)
