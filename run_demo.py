"""
Walkthrough of the regimen core against an in-memory store.

This script exercises:
1. Configuration loading and validation
2. Medication history and point-in-time snapshots
3. Conflict detection on today's regimen
4. Diuretic dose logging and deletion
5. Error results for invalid requests

Run with: uv run python run_demo.py
"""

from datetime import timedelta

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from hfcore.config import get_config, print_config_summary, validate_config
from hfcore.domain.models import Dosage
from hfcore.services.regimen_service import RegimenService

console = Console()


def demo_configuration() -> bool:
    """Load and validate configuration."""
    console.print(Panel("🔧 Configuration", style="blue"))

    try:
        validate_config()
        print_config_summary()
        return True
    except Exception as e:
        console.print(f"❌ Configuration check failed: {e}", style="red")
        return False


def demo_history(service: RegimenService) -> bool:
    """Build a dosage history and read it back day by day."""
    console.print(Panel("📅 Medication History", style="blue"))

    today = service.today()
    started = today - timedelta(days=30)
    increased = today - timedelta(days=20)
    stopped = today - timedelta(days=10)

    furosemide = service.add_medication(
        "Furosemide", Dosage(amount=40), "Twice daily", started_on=started
    ).unwrap()
    service.change_dosage(furosemide.id, Dosage(amount=80), on=increased).unwrap()
    service.discontinue(furosemide.id, on=stopped).unwrap()
    service.add_medication(
        "Torsemide", Dosage(amount=20), "Once daily", started_on=stopped
    ).unwrap()
    service.add_medication("Lisinopril", Dosage(amount=10), started_on=started).unwrap()

    table = Table(title="Regimen Snapshots")
    table.add_column("Date", style="cyan")
    table.add_column("Medications", style="white")

    for day in (started + timedelta(days=5), increased + timedelta(days=5), today):
        snapshot = service.snapshot(day).unwrap()
        listed = ", ".join(f"{m.name} {m.dosage}" for m in snapshot.medications) or "none"
        table.add_row(day.isoformat(), listed)
    console.print(table)

    timeline = Table(title="Change Timeline")
    timeline.add_column("Date", style="cyan")
    timeline.add_column("Medication", style="magenta")
    timeline.add_column("Change", style="green")
    for event in service.timeline().unwrap():
        timeline.add_row(
            event.occurred_on.isoformat(), event.medication_name, event.change_description
        )
    console.print(timeline)

    comparison = service.compare(started + timedelta(days=5), today).unwrap()
    for row in comparison:
        if row.has_changed:
            console.print(
                f"  {row.medication_name}: {row.start_dosage} → {row.end_dosage} "
                f"({row.change_type.value})"
            )
    return True


def demo_conflicts(service: RegimenService) -> bool:
    """Show a same-class conflict and clear it."""
    console.print(Panel("⚠️  Conflict Detection", style="blue"))

    start = service.today() - timedelta(days=3)
    service.add_medication("Metoprolol", Dosage(amount=25), started_on=start).unwrap()
    carvedilol = service.add_medication(
        "Carvedilol", Dosage(amount=6.25), "Twice daily", started_on=start
    ).unwrap()

    conflicts = service.current_conflicts().unwrap()
    for conflict in conflicts:
        console.print(f"🚨 [{conflict.rule_id}] {conflict.message}", style="yellow")

    service.discontinue(carvedilol.id).unwrap()
    remaining = service.current_conflicts().unwrap()
    console.print(
        f"✅ After stopping Carvedilol: {len(remaining)} conflict(s)",
        style="green" if not remaining else "red",
    )
    return len(conflicts) == 1 and not remaining


def demo_doses(service: RegimenService) -> bool:
    """Log standard and extra diuretic doses, then delete one twice."""
    console.print(Panel("💧 Diuretic Doses", style="blue"))

    diuretics = service.active_diuretics().unwrap()
    if not diuretics:
        console.print("No active diuretics", style="yellow")
        return False
    torsemide = diuretics[0]

    standard = service.log_standard_dose(torsemide).unwrap()
    now = service.history.clock()
    service.log_custom_dose(torsemide, 10, True, now - timedelta(minutes=5)).unwrap()

    table = Table(title=f"{torsemide.name} doses today")
    table.add_column("Time", style="cyan")
    table.add_column("Amount", style="green")
    table.add_column("Extra", style="yellow")
    for dose in service.doses_for_day(torsemide, service.today()).unwrap():
        table.add_row(
            dose.timestamp.strftime("%H:%M"),
            f"{dose.amount:g} {dose.unit}",
            "yes" if dose.is_extra_dose else "",
        )
    console.print(table)

    first = service.delete_dose(standard)
    second = service.delete_dose(standard)
    console.print(f"First delete ok: {first.is_ok()}")
    if second.is_err():
        console.print(f"Second delete: {second.unwrap_err().user_message}", style="yellow")
    return first.is_ok() and second.is_err()


def demo_error_handling(service: RegimenService) -> bool:
    """Invalid requests come back as typed error results."""
    console.print(Panel("🛡️ Error Handling", style="blue"))

    checks = [
        ("Future snapshot", service.snapshot(service.today() + timedelta(days=1))),
        (
            "Dose for non-diuretic",
            service.log_standard_dose(service.snapshot(service.today()).unwrap().medications[0]),
        ),
        ("Unknown medication", service.discontinue("does-not-exist")),
    ]

    all_rejected = True
    for label, result in checks:
        if result.is_err():
            error = result.unwrap_err()
            console.print(f"✅ {label}: {error.code} ({error.user_message})", style="green")
        else:
            console.print(f"❌ {label}: unexpectedly succeeded", style="red")
            all_rejected = False
    return all_rejected


def run_demo() -> None:
    """Run every walkthrough step and summarize."""
    console.print(Panel("🫀 HF Regimen Core - Walkthrough", style="bold blue"))

    service = RegimenService(get_config())
    steps = [
        ("Configuration", demo_configuration),
        ("Medication History", lambda: demo_history(service)),
        ("Conflict Detection", lambda: demo_conflicts(service)),
        ("Diuretic Doses", lambda: demo_doses(service)),
        ("Error Handling", lambda: demo_error_handling(service)),
    ]

    results = []
    for name, step in steps:
        console.print(f"\n{'=' * 60}")
        try:
            results.append((name, step()))
        except Exception as e:
            console.print(f"❌ {name} failed with exception: {e}", style="red")
            results.append((name, False))

    console.print(f"\n{'=' * 60}")
    summary = Table(title="Walkthrough Summary")
    summary.add_column("Step", style="cyan")
    summary.add_column("Result", style="white")
    for name, ok in results:
        summary.add_row(name, "✅ PASSED" if ok else "❌ FAILED")
    console.print(summary)


if __name__ == "__main__":
    try:
        run_demo()
    except KeyboardInterrupt:
        console.print("\n👋 Stopped by user", style="yellow")
