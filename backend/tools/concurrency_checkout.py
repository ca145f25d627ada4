"""
Fire concurrent checkouts at a running server to look for overselling.

Each worker gets its own guest cart (cookie session) holding ``--qty`` of the
same variant, then all workers check out at once. With stock S and quantity
q, at most S // q checkouts may succeed; the rest must come back 409.

    python tools/concurrency_checkout.py --variant <id> --workers 8 --qty 1
"""
import argparse
import concurrent.futures
import os
import threading

import requests

BASE = os.environ.get("SHOPCORE_BASE", "http://127.0.0.1:8000")


def prepare_cart(variant_id, qty):
    s = requests.Session()
    r = s.post(f"{BASE}/api/cart/items", json={"variant_id": variant_id, "quantity": qty}, timeout=10)
    r.raise_for_status()
    return s


def checkout_task(i, session, start):
    start.wait()
    try:
        r = session.post(f"{BASE}/api/checkout", timeout=20)
        return (i, r.status_code, r.text)
    except requests.RequestException as e:
        return (i, "ERR", str(e))


def run(workers, variant_id, qty):
    print(f"Preparing {workers} carts for variant={variant_id} qty={qty}")
    sessions = [prepare_cart(variant_id, qty) for _ in range(workers)]
    start = threading.Event()
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [ex.submit(checkout_task, i, s, start) for i, s in enumerate(sessions)]
        start.set()
        results = [f.result() for f in futures]

    ok = [r for r in results if r[1] == 200]
    short = [r for r in results if r[1] == 409]
    other = [r for r in results if r[1] not in (200, 409)]
    print(f"succeeded={len(ok)} insufficient_stock={len(short)} other={len(other)}")
    for r in other:
        print(r)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Concurrent checkout probe.")
    parser.add_argument("--variant", required=True)
    parser.add_argument("--qty", type=int, default=1)
    parser.add_argument("--workers", type=int, default=8)
    args = parser.parse_args()
    run(args.workers, args.variant, args.qty)
