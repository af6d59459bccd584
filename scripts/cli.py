#!/usr/bin/env python3
"""Command-line interface for the SihaCare Custody Ledger API.

Mutating commands need an identity; pass it with ``--actor-id`` and
``--role`` (or the LEDGER_ACTOR_ID / LEDGER_ACTOR_ROLE environment variables).

Usage examples:
    python scripts/cli.py list --status created
    python scripts/cli.py get 3f0c...
    python scripts/cli.py --role warehouse --actor-id <uuid> create-batch \
        --medication "Paracetamol 500mg" --quantity 1000 \
        --mfg-date 2026-01-01 --expiry-date 2028-01-01 \
        --warehouse-id <uuid> --scan-code QR1733300000000
    python scripts/cli.py --role warehouse --actor-id <uuid> dispatch <batch-id> \
        --warehouse-id <uuid> --hospital-id <uuid> --quantity 1000
    python scripts/cli.py --role hospital --actor-id <uuid> receive-scan QR1733300000000
    python scripts/cli.py --role clinician --actor-id <uuid> administer <batch-id> \
        --patient-id <uuid> --quantity 200
    python scripts/cli.py audit <batch-id>
    python scripts/cli.py near-expiry --n-days 30
"""

import argparse
import json
import os
import sys

import httpx

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 30.0


def format_output(data: object) -> None:
    """Pretty-print a JSON-serialisable object."""
    print(json.dumps(data, indent=2, default=str))


def handle_response(response: httpx.Response) -> dict:
    """Return the JSON body or exit with an error message."""
    try:
        body = response.json()
    except ValueError:
        body = {"detail": response.text}

    if response.status_code >= 400:
        detail = body.get("detail", "Unknown error")
        if isinstance(detail, dict):
            detail = f"{detail.get('code')}: {detail.get('message')}"
        print(f"Error {response.status_code}: {detail}", file=sys.stderr)
        sys.exit(1)

    return body


def actor_headers(args: argparse.Namespace) -> dict[str, str]:
    if not args.actor_id or not args.role:
        print("Error: --actor-id and --role are required for this command", file=sys.stderr)
        sys.exit(2)
    return {"X-Actor-ID": args.actor_id, "X-Actor-Role": args.role}


def query_params(**values: object) -> dict[str, object]:
    """Drop unset filters."""
    return {key: value for key, value in values.items() if value is not None}


def cmd_list(args: argparse.Namespace, base_url: str) -> None:
    """List batches with optional filters and pagination."""
    params: dict[str, object] = {"skip": args.skip, "limit": args.limit}
    if args.status:
        params["status"] = args.status
    if args.warehouse_id:
        params["warehouse_id"] = args.warehouse_id
    resp = httpx.get(f"{base_url}/api/batches/", params=params, timeout=DEFAULT_TIMEOUT)
    format_output(handle_response(resp))


def cmd_get(args: argparse.Namespace, base_url: str) -> None:
    """Retrieve a single batch by ID."""
    resp = httpx.get(f"{base_url}/api/batches/{args.id}", timeout=DEFAULT_TIMEOUT)
    format_output(handle_response(resp))


def cmd_create_batch(args: argparse.Namespace, base_url: str) -> None:
    """Register a new batch at a warehouse."""
    data = {
        "medication_name": args.medication,
        "quantity": args.quantity,
        "manufacturing_date": args.mfg_date,
        "expiry_date": args.expiry_date,
        "warehouse_id": args.warehouse_id,
        "scan_code": args.scan_code,
    }
    resp = httpx.post(
        f"{base_url}/api/batches/",
        json=data,
        headers=actor_headers(args),
        timeout=DEFAULT_TIMEOUT,
    )
    format_output(handle_response(resp))


def cmd_dispatch(args: argparse.Namespace, base_url: str) -> None:
    """Send a batch from its warehouse to a hospital."""
    data = {
        "batch_id": args.batch_id,
        "warehouse_id": args.warehouse_id,
        "hospital_id": args.hospital_id,
        "quantity": args.quantity,
    }
    resp = httpx.post(
        f"{base_url}/api/dispatches/",
        json=data,
        headers=actor_headers(args),
        timeout=DEFAULT_TIMEOUT,
    )
    format_output(handle_response(resp))


def cmd_in_transit(args: argparse.Namespace, base_url: str) -> None:
    resp = httpx.post(
        f"{base_url}/api/dispatches/{args.dispatch_id}/in-transit",
        headers=actor_headers(args),
        timeout=DEFAULT_TIMEOUT,
    )
    format_output(handle_response(resp))


def cmd_receive(args: argparse.Namespace, base_url: str) -> None:
    """Confirm receipt of a dispatch by ID."""
    resp = httpx.post(
        f"{base_url}/api/dispatches/{args.dispatch_id}/receive",
        headers=actor_headers(args),
        timeout=DEFAULT_TIMEOUT,
    )
    format_output(handle_response(resp))


def cmd_receive_scan(args: argparse.Namespace, base_url: str) -> None:
    """Confirm receipt from a scanned barcode/QR string."""
    resp = httpx.post(
        f"{base_url}/api/dispatches/receive-scan",
        json={"code": args.code},
        headers=actor_headers(args),
        timeout=DEFAULT_TIMEOUT,
    )
    format_output(handle_response(resp))


def cmd_pending(args: argparse.Namespace, base_url: str) -> None:
    params = {"hospital_id": args.hospital_id} if args.hospital_id else {}
    resp = httpx.get(f"{base_url}/api/dispatches/pending", params=params, timeout=DEFAULT_TIMEOUT)
    format_output(handle_response(resp))


def cmd_administer(args: argparse.Namespace, base_url: str) -> None:
    """Record administration of units to a patient."""
    data: dict[str, object] = {
        "batch_id": args.batch_id,
        "patient_id": args.patient_id,
        "quantity": args.quantity,
    }
    if args.notes:
        data["notes"] = args.notes
    resp = httpx.post(
        f"{base_url}/api/usage/",
        json=data,
        headers=actor_headers(args),
        timeout=DEFAULT_TIMEOUT,
    )
    format_output(handle_response(resp))


def cmd_audit(args: argparse.Namespace, base_url: str) -> None:
    """Print the custody timeline of a batch."""
    resp = httpx.get(f"{base_url}/api/batches/{args.batch_id}/audit", timeout=DEFAULT_TIMEOUT)
    format_output(handle_response(resp))


def cmd_near_expiry(args: argparse.Namespace, base_url: str) -> None:
    """List batches expiring within n_days."""
    params = {"n_days": args.n_days} if args.n_days is not None else {}
    resp = httpx.get(
        f"{base_url}/api/batches/near-expiry",
        params=params,
        timeout=DEFAULT_TIMEOUT,
    )
    format_output(handle_response(resp))


def cmd_summary(args: argparse.Namespace, base_url: str) -> None:
    resp = httpx.get(f"{base_url}/api/summary", timeout=DEFAULT_TIMEOUT)
    format_output(handle_response(resp))


def cmd_register(args: argparse.Namespace, base_url: str) -> None:
    """Register a warehouse, hospital or patient (admin only)."""
    kind = args.command.removeprefix("register-")
    data: dict[str, object] = {"name": args.name}
    if kind == "patient":
        data.update(age=args.age, hospital_id=args.hospital_id, medical_record=args.medical_record)
    else:
        data["location"] = args.location
        if kind == "hospital":
            data["capacity"] = args.capacity
    resp = httpx.post(
        f"{base_url}/api/{kind}s/",
        json=data,
        headers=actor_headers(args),
        timeout=DEFAULT_TIMEOUT,
    )
    format_output(handle_response(resp))


def cmd_references(args: argparse.Namespace, base_url: str) -> None:
    """List warehouses, hospitals or patients."""
    params = query_params(hospital_id=getattr(args, "hospital_id", None))
    resp = httpx.get(f"{base_url}/api/{args.command}/", params=params, timeout=DEFAULT_TIMEOUT)
    format_output(handle_response(resp))


def cmd_scan(args: argparse.Namespace, base_url: str) -> None:
    """Look up a batch by its exact scan code."""
    resp = httpx.get(f"{base_url}/api/batches/scan/{args.code}", timeout=DEFAULT_TIMEOUT)
    format_output(handle_response(resp))


def cmd_stock(args: argparse.Namespace, base_url: str) -> None:
    """Available or administrable stock, optionally at one site."""
    params = query_params(
        warehouse_id=getattr(args, "warehouse_id", None),
        hospital_id=args.hospital_id,
    )
    resp = httpx.get(f"{base_url}/api/batches/{args.command}", params=params, timeout=DEFAULT_TIMEOUT)
    format_output(handle_response(resp))


def cmd_dispatches(args: argparse.Namespace, base_url: str) -> None:
    params = query_params(batch_id=args.batch_id, hospital_id=args.hospital_id)
    resp = httpx.get(f"{base_url}/api/dispatches/", params=params, timeout=DEFAULT_TIMEOUT)
    format_output(handle_response(resp))


def cmd_usage(args: argparse.Namespace, base_url: str) -> None:
    params = query_params(
        batch_id=args.batch_id, patient_id=args.patient_id, hospital_id=args.hospital_id
    )
    resp = httpx.get(f"{base_url}/api/usage/", params=params, timeout=DEFAULT_TIMEOUT)
    format_output(handle_response(resp))


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="cli.py",
        description="SihaCare Custody Ledger CLI",
    )
    parser.add_argument(
        "--base-url",
        default=DEFAULT_BASE_URL,
        help=f"API base URL (default: {DEFAULT_BASE_URL})",
    )
    parser.add_argument(
        "--actor-id",
        default=os.getenv("LEDGER_ACTOR_ID"),
        help="Acting user's UUID (env: LEDGER_ACTOR_ID)",
    )
    parser.add_argument(
        "--role",
        default=os.getenv("LEDGER_ACTOR_ROLE"),
        choices=["admin", "warehouse", "hospital", "clinician", "unassigned"],
        help="Acting user's role (env: LEDGER_ACTOR_ROLE)",
    )

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    # --- list ---
    p_list = sub.add_parser("list", help="List batches")
    p_list.add_argument("--status", choices=["created", "dispatched", "received", "administered"])
    p_list.add_argument("--warehouse-id", help="Owning warehouse UUID")
    p_list.add_argument("--skip", type=int, default=0, help="Pagination offset")
    p_list.add_argument("--limit", type=int, default=100, help="Page size")

    # --- get ---
    p_get = sub.add_parser("get", help="Get batch by ID")
    p_get.add_argument("id", help="Batch UUID")

    # --- create-batch ---
    p_create = sub.add_parser("create-batch", help="Register a new batch")
    p_create.add_argument("--medication", required=True, help="Medication name")
    p_create.add_argument("--quantity", type=int, required=True, help="Total units")
    p_create.add_argument("--mfg-date", required=True, help="Manufacturing date (YYYY-MM-DD)")
    p_create.add_argument("--expiry-date", required=True, help="Expiry date (YYYY-MM-DD)")
    p_create.add_argument("--warehouse-id", required=True, help="Warehouse UUID")
    p_create.add_argument("--scan-code", required=True, help="Barcode/QR payload")

    # --- dispatch ---
    p_dispatch = sub.add_parser("dispatch", help="Dispatch a batch to a hospital")
    p_dispatch.add_argument("batch_id", help="Batch UUID")
    p_dispatch.add_argument("--warehouse-id", required=True, help="Source warehouse UUID")
    p_dispatch.add_argument("--hospital-id", required=True, help="Destination hospital UUID")
    p_dispatch.add_argument("--quantity", type=int, required=True, help="Units to send")

    # --- in-transit ---
    p_transit = sub.add_parser("in-transit", help="Mark a dispatch as in transit")
    p_transit.add_argument("dispatch_id", help="Dispatch UUID")

    # --- receive ---
    p_receive = sub.add_parser("receive", help="Confirm receipt of a dispatch")
    p_receive.add_argument("dispatch_id", help="Dispatch UUID")

    # --- receive-scan ---
    p_scan = sub.add_parser("receive-scan", help="Confirm receipt from a scanned code")
    p_scan.add_argument("code", help="Decoded scanner string")

    # --- pending ---
    p_pending = sub.add_parser("pending", help="List deliveries not yet received")
    p_pending.add_argument("--hospital-id", help="Destination hospital UUID")

    # --- administer ---
    p_admin = sub.add_parser("administer", help="Record usage against a patient")
    p_admin.add_argument("batch_id", help="Batch UUID")
    p_admin.add_argument("--patient-id", required=True, help="Patient UUID")
    p_admin.add_argument("--quantity", type=int, required=True, help="Units administered")
    p_admin.add_argument("--notes", help="Free-text clinical note")

    # --- audit ---
    p_audit = sub.add_parser("audit", help="Show a batch's custody timeline")
    p_audit.add_argument("batch_id", help="Batch UUID")

    # --- near-expiry ---
    p_near = sub.add_parser("near-expiry", help="List batches nearing expiry")
    p_near.add_argument("--n-days", type=int, help="Look-ahead window in days")

    # --- summary ---
    sub.add_parser("summary", help="Headline ledger counts")

    # --- register-* ---
    p_wh = sub.add_parser("register-warehouse", help="Register a warehouse")
    p_wh.add_argument("name")
    p_wh.add_argument("--location", default="")

    p_hosp = sub.add_parser("register-hospital", help="Register a hospital")
    p_hosp.add_argument("name")
    p_hosp.add_argument("--location", default="")
    p_hosp.add_argument("--capacity", type=int, default=0, help="Bed capacity")

    p_pat = sub.add_parser("register-patient", help="Register a patient at a hospital")
    p_pat.add_argument("name")
    p_pat.add_argument("--age", type=int, required=True)
    p_pat.add_argument("--hospital-id", required=True, help="Hospital UUID")
    p_pat.add_argument("--medical-record", default="")

    sub.add_parser("warehouses", help="List warehouses")
    sub.add_parser("hospitals", help="List hospitals")
    p_plist = sub.add_parser("patients", help="List patients")
    p_plist.add_argument("--hospital-id", help="Hospital UUID")

    # --- scan ---
    p_lookup = sub.add_parser("scan", help="Look up a batch by exact scan code")
    p_lookup.add_argument("code")

    # --- available / administrable ---
    p_avail = sub.add_parser("available", help="Batches with stock in created or received state")
    site = p_avail.add_mutually_exclusive_group()
    site.add_argument("--warehouse-id", help="Warehouse UUID")
    site.add_argument("--hospital-id", help="Hospital UUID")

    p_usable = sub.add_parser("administrable", help="Received stock clinicians can still use")
    p_usable.add_argument("--hospital-id", help="Hospital UUID")

    # --- dispatches / usage listings ---
    p_dlist = sub.add_parser("dispatches", help="List dispatches")
    p_dlist.add_argument("--batch-id")
    p_dlist.add_argument("--hospital-id")

    p_ulist = sub.add_parser("usage", help="List usage records")
    p_ulist.add_argument("--batch-id")
    p_ulist.add_argument("--patient-id")
    p_ulist.add_argument("--hospital-id")

    return parser


def main() -> None:
    """Entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    base_url: str = args.base_url

    commands = {
        "list": cmd_list,
        "get": cmd_get,
        "create-batch": cmd_create_batch,
        "dispatch": cmd_dispatch,
        "in-transit": cmd_in_transit,
        "receive": cmd_receive,
        "receive-scan": cmd_receive_scan,
        "pending": cmd_pending,
        "administer": cmd_administer,
        "audit": cmd_audit,
        "near-expiry": cmd_near_expiry,
        "summary": cmd_summary,
        "register-warehouse": cmd_register,
        "register-hospital": cmd_register,
        "register-patient": cmd_register,
        "warehouses": cmd_references,
        "hospitals": cmd_references,
        "patients": cmd_references,
        "scan": cmd_scan,
        "available": cmd_stock,
        "administrable": cmd_stock,
        "dispatches": cmd_dispatches,
        "usage": cmd_usage,
    }

    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    handler(args, base_url)


if __name__ == "__main__":
    main()
