"""Manual concurrency stress test script.

Usage:
    python scripts/simulate_concurrent_ops.py

Prerequisites:
    - API server running on localhost:8000
    - Database migrated (alembic upgrade head); the script registers its own
      warehouse, hospital, patients and batch
"""

import sys
import time
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date, timedelta

import httpx

BASE_URL = "http://localhost:8000/api"

ADMIN = {"X-Actor-ID": str(uuid.uuid4()), "X-Actor-Role": "admin"}
WAREHOUSE = {"X-Actor-ID": str(uuid.uuid4()), "X-Actor-Role": "warehouse"}
HOSPITAL = {"X-Actor-ID": str(uuid.uuid4()), "X-Actor-Role": "hospital"}


def post(path: str, payload: dict | None, headers: dict[str, str]) -> dict:
    response = httpx.post(f"{BASE_URL}{path}", json=payload, headers=headers, timeout=10)
    response.raise_for_status()
    return response.json()


def prepare_received_batch(quantity: int, patients: int) -> tuple[dict, list[str]]:
    """Register sites and patients, then create, dispatch and receive a batch."""
    warehouse = post("/warehouses/", {"name": "Simulation Store"}, ADMIN)
    hospital = post("/hospitals/", {"name": "Simulation Hospital"}, ADMIN)
    patient_ids = [
        post(
            "/patients/",
            {"name": f"Sim Patient {i}", "age": 40, "hospital_id": hospital["id"]},
            ADMIN,
        )["id"]
        for i in range(patients)
    ]

    today = date.today()
    batch = post(
        "/batches/",
        {
            "medication_name": "Paracetamol 500mg",
            "quantity": quantity,
            "manufacturing_date": today.isoformat(),
            "expiry_date": (today + timedelta(days=365)).isoformat(),
            "warehouse_id": warehouse["id"],
            "scan_code": f"SIM-{uuid.uuid4().hex[:12].upper()}",
        },
        WAREHOUSE,
    )
    dispatch = post(
        "/dispatches/",
        {
            "batch_id": batch["id"],
            "warehouse_id": warehouse["id"],
            "hospital_id": hospital["id"],
            "quantity": quantity,
        },
        WAREHOUSE,
    )
    post(f"/dispatches/{dispatch['id']}/receive", None, HOSPITAL)
    return batch, patient_ids


def administer(batch_id: str, patient_id: str, qty: int, worker_id: int) -> dict:
    """Attempt to record usage as an independent clinician."""
    clinician = {"X-Actor-ID": str(uuid.uuid4()), "X-Actor-Role": "clinician"}
    try:
        response = httpx.post(
            f"{BASE_URL}/usage/",
            json={"batch_id": batch_id, "patient_id": patient_id, "quantity": qty},
            headers=clinician,
            timeout=10,
        )
        return {
            "worker_id": worker_id,
            "status_code": response.status_code,
            "success": response.status_code == 201,
        }
    except httpx.HTTPError as e:
        return {"worker_id": worker_id, "status_code": -1, "error": str(e), "success": False}


def run_simulation(
    quantity: int = 600,
    qty_per_request: int = 500,
    num_workers: int = 2,
) -> None:
    """Run concurrent administration simulation."""
    print(f"\n{'=' * 60}")
    print("Concurrent Administration Simulation")
    print(f"{'=' * 60}")
    print(f"Batch quantity: {quantity} units")
    print(f"Units per request: {qty_per_request}")
    print(f"Number of workers: {num_workers}")
    print(f"Expected max successes: {quantity // qty_per_request}")
    print(f"{'=' * 60}\n")

    print("Preparing received batch...")
    batch, patient_ids = prepare_received_batch(quantity, patients=num_workers)
    batch_id = batch["id"]
    print(f"Batch {batch_id} (scan code: {batch['scan_code']}) received")

    print(f"\nLaunching {num_workers} concurrent usage requests...")
    start_time = time.time()
    results = []

    with ThreadPoolExecutor(max_workers=num_workers) as executor:
        futures = {
            executor.submit(administer, batch_id, patient_ids[i], qty_per_request, i): i
            for i in range(num_workers)
        }
        for future in as_completed(futures):
            results.append(future.result())

    elapsed = time.time() - start_time

    successes = [r for r in results if r["success"]]
    failures = [r for r in results if not r["success"]]
    conflicts = [r for r in results if r.get("status_code") == 409]

    print(f"\n{'=' * 60}")
    print(f"Results (completed in {elapsed:.2f}s):")
    print(f"  Successful administrations: {len(successes)}")
    print(f"  Rejected (409): {len(conflicts)}")
    print(f"  Other failures: {len(failures) - len(conflicts)}")

    administered = len(successes) * qty_per_request
    final_batch = httpx.get(f"{BASE_URL}/batches/{batch_id}", timeout=10).json()
    conserved = final_batch["remaining_quantity"] + administered == quantity
    print(f"\n  Units administered: {administered}")
    print(f"  Remaining (API): {final_batch['remaining_quantity']}")
    print(f"  Conservation check: {'PASS' if conserved else 'FAIL'}")
    print(f"{'=' * 60}\n")


if __name__ == "__main__":
    try:
        httpx.get(f"{BASE_URL.replace('/api', '')}/health", timeout=5).raise_for_status()
    except httpx.HTTPError:
        print(f"ERROR: Cannot connect to API at {BASE_URL.replace('/api', '')}")
        print("Make sure the API server is running: uvicorn app.main:app --reload")
        sys.exit(1)

    run_simulation(quantity=600, qty_per_request=500, num_workers=2)
    run_simulation(quantity=1000, qty_per_request=5, num_workers=50)
