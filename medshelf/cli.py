"""CLI entry point."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from . import expiry
from .cabinet import MedicineCabinet
from .config import DEFAULT_CONFIG_PATH, MedshelfConfig, load_config
from .db import MedicineDB, ReminderBindingDB
from .errors import MedshelfError
from .models import Medicine, MedicineWithDays
from .notifications import create_device_probe, create_service
from .ocr import create_reader
from .reconciler import ExpiryReminderReconciler

if TYPE_CHECKING:
    from .notifications.local import LocalNotificationService

logger = logging.getLogger(__name__)

_REMINDER_HINT = "Reminders are applied by 'medshelf run' on its next resync."


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="medshelf",
        description="Medicine cabinet: track expiry dates and get reminded before they pass",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help=f"Path to the config file (TOML, default {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Log progress to stderr"
    )

    sub = parser.add_subparsers(dest="command")

    list_parser = sub.add_parser("list", help="List all medicines")
    list_parser.add_argument("--json", action="store_true", help="Output JSON")

    show_parser = sub.add_parser("show", help="Show one medicine")
    show_parser.add_argument("id")
    show_parser.add_argument("--json", action="store_true", help="Output JSON")

    add_parser = sub.add_parser("add", help="Add a medicine")
    add_parser.add_argument("--name", required=True)
    add_parser.add_argument("--company", default="")
    add_parser.add_argument("--expiry", default="", metavar="MM/YYYY")
    add_parser.add_argument("--notes", default="")
    add_parser.add_argument("--image", default="", help="Path of a package photo")

    update_parser = sub.add_parser("update", help="Edit a medicine")
    update_parser.add_argument("id")
    update_parser.add_argument("--name")
    update_parser.add_argument("--company")
    update_parser.add_argument("--expiry", metavar="MM/YYYY")
    update_parser.add_argument("--notes")
    update_parser.add_argument("--image")

    delete_parser = sub.add_parser("delete", help="Delete a medicine")
    delete_parser.add_argument("id")

    expiring_parser = sub.add_parser("expiring", help="Medicines expiring soon")
    expiring_parser.add_argument(
        "--days", type=int, default=None, help="Look-ahead window in days"
    )
    expiring_parser.add_argument("--json", action="store_true", help="Output JSON")

    expired_parser = sub.add_parser("expired", help="Expired medicines")
    expired_parser.add_argument("--json", action="store_true", help="Output JSON")

    scan_parser = sub.add_parser("scan", help="Read a medicine package photo")
    scan_parser.add_argument("image", help="Image file of the package")
    scan_parser.add_argument("--add", action="store_true", help="Add the result")
    scan_parser.add_argument("--name", default=None, help="Override the read name")
    scan_parser.add_argument("--json", action="store_true", help="Output JSON")

    reminders_parser = sub.add_parser(
        "reminders", help="List the reminders 'run' will schedule"
    )
    reminders_parser.add_argument("--json", action="store_true", help="Output JSON")

    sub.add_parser("run", help="Run the reminder scheduler in the foreground")

    export_parser = sub.add_parser("export", help="Export medicines as JSON")
    export_parser.add_argument("file", help="Output file ('-' for stdout)")

    import_parser = sub.add_parser("import", help="Import medicines from JSON")
    import_parser.add_argument("file", help="File written by 'export'")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    load_dotenv()
    config = load_config(args.config or DEFAULT_CONFIG_PATH)

    try:
        match args.command:
            case "list":
                _cmd_list(config, args)
            case "show":
                _cmd_show(config, args)
            case "expiring":
                _cmd_expiring(config, args)
            case "expired":
                _cmd_expired(config, args)
            case "reminders":
                _cmd_reminders(config, args)
            case "export":
                _cmd_export(config, args)
            case "run":
                try:
                    asyncio.run(_cmd_run(config))
                except KeyboardInterrupt:
                    print("Stopped.")
            case _:
                asyncio.run(_dispatch_async(config, args))
    except MedshelfError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _open_reconciler(config: MedshelfConfig, notifier=None) -> ExpiryReminderReconciler:
    return ExpiryReminderReconciler(
        create_service(config, notifier=notifier),
        ReminderBindingDB(config.database.path),
        device=create_device_probe(config),
        lead_days=config.notifications.lead_days,
    )


def _close_cabinet(cabinet: MedicineCabinet) -> None:
    cabinet.store.close()
    if cabinet.reconciler is not None:
        cabinet.reconciler.bindings.close()


def _format_medicine(m: Medicine) -> str:
    status = expiry.classify(m.expiry_date)
    company = f" ({m.company})" if m.company else ""
    return (
        f"  {m.id}  {m.name}{company}  "
        f"{m.expiry_date or '--/----'}  [{status.status}] {status.description}"
    )


def _print_with_days(items: list[MedicineWithDays], as_json: bool, empty: str) -> None:
    if as_json:
        print(json.dumps([i.to_dict() for i in items], ensure_ascii=False, indent=2))
        return
    if not items:
        print(empty)
        return
    for item in items:
        print(f"{_format_medicine(item.medicine)}  ({item.days_until_expiry} days)")


def _cmd_list(config: MedshelfConfig, args) -> None:
    store = MedicineDB(config.database.path)
    try:
        medicines = store.get_all()
    finally:
        store.close()

    if args.json:
        print(json.dumps([m.to_dict() for m in medicines], ensure_ascii=False, indent=2))
        return
    if not medicines:
        print("No medicines recorded.")
        return
    print(f"Medicines ({len(medicines)}):")
    for m in medicines:
        print(_format_medicine(m))


def _cmd_show(config: MedshelfConfig, args) -> None:
    store = MedicineDB(config.database.path)
    try:
        medicine = store.get_by_id(args.id)
    finally:
        store.close()

    if medicine is None:
        print(f"No medicine with id {args.id}", file=sys.stderr)
        sys.exit(1)
    if args.json:
        print(json.dumps(medicine.to_dict(), ensure_ascii=False, indent=2))
        return

    status = expiry.classify(medicine.expiry_date)
    print(f"Name:     {medicine.name}")
    print(f"Company:  {medicine.company or '-'}")
    print(f"Expiry:   {medicine.expiry_date or '-'}  ({status.description})")
    print(f"Notes:    {medicine.notes or '-'}")
    print(f"Image:    {medicine.image_uri or '-'}")
    print(f"Added:    {medicine.created_at}")


def _cmd_expiring(config: MedshelfConfig, args) -> None:
    days = args.days if args.days is not None else config.expiry.expiring_soon_days
    store = MedicineDB(config.database.path)
    try:
        items = store.query_expiring(days)
    finally:
        store.close()
    _print_with_days(items, args.json, f"Nothing expires within {days} days.")


def _cmd_expired(config: MedshelfConfig, args) -> None:
    store = MedicineDB(config.database.path)
    try:
        items = store.query_expired()
    finally:
        store.close()
    _print_with_days(items, args.json, "No expired medicines.")


def _cmd_reminders(config: MedshelfConfig, args) -> None:
    store = MedicineDB(config.database.path)
    reconciler = _open_reconciler(config)
    try:
        planned = reconciler.plan(store.get_all())
    finally:
        store.close()
        reconciler.bindings.close()

    if args.json:
        data = [
            {
                "id": m.id,
                "name": m.name,
                "expiryDate": m.expiry_date,
                "triggerAt": trigger_at.isoformat(),
            }
            for m, trigger_at in planned
        ]
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return
    if not planned:
        print("No reminders due.")
        return
    print(f"Reminders ({len(planned)}):")
    for m, trigger_at in planned:
        print(f"  {trigger_at:%Y-%m-%d}  {m.name} ({m.id})  expires {m.expiry_date}")


def _cmd_export(config: MedshelfConfig, args) -> None:
    store = MedicineDB(config.database.path)
    try:
        records = store.export_records()
    finally:
        store.close()

    text = json.dumps(records, ensure_ascii=False, indent=2)
    if args.file == "-":
        print(text)
    else:
        Path(args.file).write_text(text + "\n", encoding="utf-8")
        print(f"Exported {len(records)} medicines to {args.file}")


async def _dispatch_async(config: MedshelfConfig, args) -> None:
    cabinet = MedicineCabinet(MedicineDB(config.database.path))
    try:
        match args.command:
            case "add":
                await _cmd_add(cabinet, args)
            case "update":
                await _cmd_update(cabinet, args)
            case "delete":
                await _cmd_delete(cabinet, args)
            case "scan":
                await _cmd_scan(config, cabinet, args)
            case "import":
                await _cmd_import(cabinet, args)
    finally:
        _close_cabinet(cabinet)


async def _cmd_add(cabinet: MedicineCabinet, args) -> None:
    medicine = Medicine(
        name=args.name,
        company=args.company,
        expiry_date=args.expiry,
        notes=args.notes,
        image_uri=args.image,
    )
    if medicine.expiry_date and expiry.parse(medicine.expiry_date) is None:
        print(f"Warning: expiry {medicine.expiry_date!r} is not MM/YYYY", file=sys.stderr)
    record_id = await cabinet.add(medicine)
    print(f"Added {medicine.name} ({record_id})")
    print(_REMINDER_HINT)


async def _cmd_update(cabinet: MedicineCabinet, args) -> None:
    fields = {
        key: value
        for key, value in {
            "name": args.name,
            "company": args.company,
            "expiry_date": args.expiry,
            "notes": args.notes,
            "image_uri": args.image,
        }.items()
        if value is not None
    }
    if not fields:
        print("Nothing to update.", file=sys.stderr)
        sys.exit(1)
    if not await cabinet.update(args.id, fields):
        print(f"No medicine with id {args.id}", file=sys.stderr)
        sys.exit(1)
    print(f"Updated {args.id}")
    print(_REMINDER_HINT)


async def _cmd_delete(cabinet: MedicineCabinet, args) -> None:
    if not await cabinet.delete(args.id):
        print(f"No medicine with id {args.id}", file=sys.stderr)
        sys.exit(1)
    print(f"Deleted {args.id}")
    print(_REMINDER_HINT)


async def _cmd_scan(config: MedshelfConfig, cabinet: MedicineCabinet, args) -> None:
    reader = create_reader(config)
    print("🔍 Reading label...")
    label = await cabinet.scan(reader, args.image)

    if args.json:
        print(json.dumps(label.to_dict(), ensure_ascii=False, indent=2))
    else:
        print(f"  Name:    {label.name or '-'}")
        print(f"  Company: {label.company or '-'}")
        print(f"  Expiry:  {label.expiry_date or '-'}")

    if args.add:
        record_id = await cabinet.add_from_label(
            label, name=args.name, image_uri=str(Path(args.image).resolve())
        )
        print(f"Added {args.name or label.name} ({record_id})")
        print(_REMINDER_HINT)


async def _cmd_import(cabinet: MedicineCabinet, args) -> None:
    try:
        records = json.loads(Path(args.file).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        print(f"Cannot read {args.file}: {e}", file=sys.stderr)
        sys.exit(1)
    if not isinstance(records, list):
        print("Import file must contain a JSON array", file=sys.stderr)
        sys.exit(1)
    ids = cabinet.store.import_records(records)
    print(f"Imported {len(ids)} medicines.")
    print(_REMINDER_HINT)


async def _cmd_run(config: MedshelfConfig, stop: asyncio.Event | None = None) -> None:
    """Keep reminders live until *stop* is set.

    Reminders are rebuilt from the inventory at start-up and every
    ``notifications.resync_minutes``, so edits made by other commands are
    picked up. All bindings are cleared on exit.
    """
    def show(payload) -> None:
        print(f"🔔 {payload.title}: {payload.body}", flush=True)

    stop = stop or asyncio.Event()
    cabinet = MedicineCabinet(
        MedicineDB(config.database.path), _open_reconciler(config, notifier=show)
    )
    service: LocalNotificationService = cabinet.reconciler.service

    async def resync_job() -> None:
        try:
            await cabinet.resync()
        except Exception:
            logger.exception("Periodic reminder resync failed")

    service.start()
    try:
        bindings = await cabinet.resync()
        print(f"{len(bindings)} reminders scheduled. Press Ctrl+C to stop.", flush=True)
        minutes = config.notifications.resync_minutes
        if minutes > 0:
            service.add_interval_job(
                resync_job, minutes=minutes, job_id="resync", name="Reminder resync"
            )
        await stop.wait()
    finally:
        await cabinet.reconciler.cancel_all()
        service.shutdown()
        _close_cabinet(cabinet)
