import os
import sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import argparse
import concurrent.futures
import json

import requests

BASE = os.environ.get("LEDGER_BASE", "http://127.0.0.1:8000")


def transition_task(i, credit_note_id, event, idempotency_key=None):
    headers = {"Content-Type": "application/json", "X-Actor-Id": f"worker-{i}"}
    if idempotency_key:
        headers["Idempotency-Key"] = idempotency_key
    try:
        r = requests.post(
            f"{BASE}/api/credit-notes/{credit_note_id}/{event}",
            json={"note": f"concurrency test worker {i}"},
            headers=headers,
            timeout=20,
        )
        return (i, event, r.status_code, r.text)
    except requests.RequestException as e:
        return (i, event, "ERR", str(e))


def run_concurrent(workers, credit_note_id, event, idempotency_key=None):
    print(f"Running {event} test: workers={workers}, credit_note_id={credit_note_id}, key={idempotency_key}")
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [
            ex.submit(transition_task, i, credit_note_id, event, idempotency_key)
            for i in range(workers)
        ]
        results = [f.result() for f in futures]
    print("Results:")
    for r in results:
        print(r)
    ok = [r for r in results if r[2] == 200]
    rejected = [r for r in results if r[2] == 409]
    print(f"ok={len(ok)} rejected={len(rejected)} other={len(results) - len(ok) - len(rejected)}")
    if idempotency_key:
        # every 200 should carry the same body
        print("Distinct bodies:", len({json.dumps(json.loads(r[3]), sort_keys=True) for r in ok}))
    elif len(ok) != 1:
        print("WARNING: expected exactly one winner")

    stock = requests.get(
        f"{BASE}/api/inventory/movements",
        params={"source_table": "credit_notes", "source_id": credit_note_id},
        timeout=10,
    )
    print("Movements for credit note:")
    for m in stock.json():
        print(f"  {m['movement_type']:<10} {m['quantity']:>6} {m['quantity_grams']} {m['reference']}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Fire concurrent credit note transitions.")
    parser.add_argument("credit_note_id", type=int)
    parser.add_argument("--event", choices=["void", "refund", "restore"], default="void")
    parser.add_argument("--workers", type=int, default=8)
    parser.add_argument("--idempotency", default=None, help="send the same Idempotency-Key from every worker")
    args = parser.parse_args()

    run_concurrent(args.workers, args.credit_note_id, args.event, args.idempotency)
