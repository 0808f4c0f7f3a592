from tracker.domain.errors import DomainError, TaskAlreadyExistsError, TaskNotFoundError, TaskValidationError
from tracker.domain.enums import TaskPriority, TaskStatus, TaskType
from tracker.domain.task import Task
from tracker.domain.timestamps import format_instant
from tracker.services.task_service import TaskService
from tracker.ports.id_provider import IdProvider
from tracker.adapters.memory.task_repo import InMemorySnapshotRepository
from tracker.adapters.jsonfile.task_repo import JsonSnapshotRepository
from tracker.adapters.sql.task_repo import SqlSnapshotRepository
from tracker.adapters.system.clock_system import SystemClock
from tracker.adapters.system.id_providers import CounterIdProvider, SequentialIdProvider, UuidIdProvider
from tracker.config import Settings
from tracker.logging_setup import setup_logging
from tracker.api.colors import TaskColor
from typer import Exit, Option, Argument, Typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional
import logging

logger = logging.getLogger(__name__)


### COMMENTS
# ==========================================================
# CLI (Typer + Rich): interfejs użytkownika dla magazynu zadań.
# ==========================================================
# Rola:
# - Mapuje komendy na metody TaskService (add/list/show/update/done/rm/feature/ontime).
# - Wyświetla wyniki w czytelnej formie (tabele, panele, kolory).
# - Łapie DomainError, drukuje przyjazny komunikat i kończy z kodem 1.
#
# Zasady:
# - Zero logiki biznesowej, deleguj do TaskService; payloady budujemy
#   w kształcie camelCase, tak jak przychodziłyby z API.
# - Jednorazowy bootstrap zależności (settings + logging + repo + service) w callbacku.


app = Typer(help="Task tracker CLI (tasks, subtasks, bugs, stories, epics)")
feature_app = Typer(help="Manage features of an epic")
app.add_typer(feature_app, name="feature")
console = Console()

service: TaskService | None = None  # ustawimy w callbacku


def build_id_provider(scheme: str) -> IdProvider:
    match scheme:
        case "uuid":
            return UuidIdProvider()
        case "counter":
            return CounterIdProvider()
        case _:
            return SequentialIdProvider()


def build_service(
    settings: Settings,
    file: Optional[Path] = None,
    db_url: Optional[str] = None,
    memory: bool = False,
) -> TaskService:
    """Tworzy serwis na bazie wybranego adaptera.
    - `--memory` -> InMemory
    - `--file` -> plik JSON
    - `--db` -> SQL
    - nic -> backend z ustawień (TRACKER_BACKEND)
    """
    if memory:
        repo = InMemorySnapshotRepository()
    elif file:
        repo = JsonSnapshotRepository(file)
    elif db_url:
        repo = SqlSnapshotRepository(db_url)
    elif settings.backend == "memory":
        repo = InMemorySnapshotRepository()
    elif settings.backend == "sql":
        repo = SqlSnapshotRepository(settings.db_url)
    else:
        repo = JsonSnapshotRepository(settings.data_file)
    return TaskService(
        repo,
        build_id_provider(settings.id_scheme),
        SystemClock(),
        statuses=settings.statuses,
        strict_variants=settings.strict_variants,
    )


def print_error(e: DomainError) -> None:
    """Czerwony panel dopasowany do rodzaju błędu domenowego."""
    match e:
        case TaskValidationError():
            lines = [f"❌ {v.field}: {v.message}" for v in e.violations]
            console.print(Panel.fit("\n".join(lines), title="Validation error", border_style="red"))
        case TaskNotFoundError():
            console.print(Panel.fit(
                f"❌ {e}\n[dim]Use 'tracker list' to find a valid ID[/]",
                title="Not found",
                border_style="red",
            ))
        case TaskAlreadyExistsError():
            console.print(Panel.fit(f"❌ {e}", title="Duplicate ID", border_style="red"))
        case _:
            console.print(Panel.fit(f"❌ {e}", title="Domain error", border_style="red"))


@contextmanager
def domain_errors():
    try:
        yield
    except DomainError as e:
        logger.debug("Command failed: %r", e)
        print_error(e)
        raise Exit(code=1)


def get_service() -> TaskService:
    if service is None:
        raise RuntimeError("service not initialised; run through the CLI entry point")
    return service


@app.callback()
def main(
    file: Optional[Path] = Option(None, "--file", "-f", help="Ścieżka do pliku JSON ze snapshotem"),
    db: Optional[str] = Option(None, "--db", help="URL bazy SQL, np. sqlite:///tasks.db"),
    memory: bool = Option(False, "--memory", help="Bez trwałości (tylko na czas procesu)"),
) -> None:
    """Bootstrap zależności na starcie procesu CLI."""
    global service
    try:
        settings = Settings.from_env()
    except ValueError as e:
        console.print(Panel.fit(f"❌ {e}", title="Configuration error", border_style="red"))
        raise Exit(code=2)
    setup_logging(settings.log_level_value, settings.log_file)
    with domain_errors():
        service = build_service(settings, file=file, db_url=db, memory=memory)


def color_status(status: TaskStatus) -> str:
    """Zwraca status w Rich-markup z kolorem."""
    match status:
        case TaskStatus.TODO:
            return f"{TaskColor.RED}{status.value}{TaskColor.RESET}"
        case TaskStatus.IN_PROGRESS:
            return f"{TaskColor.BLUE}{status.value}{TaskColor.RESET}"
        case TaskStatus.REVIEW:
            return f"{TaskColor.MAGENTA}{status.value}{TaskColor.RESET}"
        case TaskStatus.DONE:
            return f"{TaskColor.GREEN}{status.value}{TaskColor.RESET}"
        case _:
            return str(status)


def color_priority(priority: TaskPriority) -> str:
    match priority:
        case TaskPriority.HIGH:
            return f"{TaskColor.RED}{priority.value}{TaskColor.RESET}"
        case TaskPriority.MEDIUM:
            return f"{TaskColor.YELLOW}{priority.value}{TaskColor.RESET}"
        case _:
            return f"{TaskColor.DIM}{priority.value}{TaskColor.RESET}"


def render_list(items: list[Task], total: int) -> None:
    """Renderuje tabelę Rich z kolumnami: ID, Type, Title, Status, Priority, Created, Deadline."""

    table = Table(show_lines=True, header_style="bold")
    table.add_column("ID", no_wrap=True, style="cyan")
    table.add_column("Type", no_wrap=True)
    table.add_column("Title")
    table.add_column("Status", no_wrap=True)
    table.add_column("Priority", no_wrap=True)
    table.add_column("Created At", no_wrap=True, style="dim")
    table.add_column("Deadline", no_wrap=True)

    for t in items:
        table.add_row(
            str(t.task_id),
            t.type.value,
            t.title,
            color_status(t.status),
            color_priority(t.priority),
            t.created_at.strftime("%Y-%m-%d %H:%M"),
            t.deadline.strftime("%Y-%m-%d %H:%M") if t.deadline else "-",
        )

    console.print(table)
    console.print(f"[dim]Shown: {len(items)} • Total: {total}[/dim]")


def _put(payload: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        payload[key] = value


@app.command("add")
def add(
    title: str,
    desc: Optional[str] = Option(None, "--desc", "-d"),
    task_type: Optional[str] = Option(None, "--type", "-t", help="task | subtask | bug | story | epic"),
    status: Optional[str] = Option(None, "--status", "-s"),
    priority: Optional[str] = Option(None, "--priority", "-p"),
    deadline: Optional[str] = Option(None, "--deadline", help="ISO 8601, np. 2025-10-19T20:00:00Z"),
    parent: Optional[str] = Option(None, "--parent", help="ID zadania nadrzędnego (subtask)"),
    assignee: Optional[str] = Option(None, "--assignee", "-a"),
    points: Optional[int] = Option(None, "--points"),
    epic: Optional[str] = Option(None, "--epic", help="ID epiku (story)"),
    features: Optional[list[str]] = Option(None, "--feature", help="Funkcjonalność epiku (można powtarzać)"),
    task_id: Optional[str] = Option(None, "--id", help="Jawne ID zamiast automatycznego"),
) -> None:
    """
    Dodaje nowe zadanie dowolnego typu.

    Flow:
    - Złóż payload tylko z podanych opcji i wywołaj service.create(payload).
    - Sukces: zielony panel z podsumowaniem zadania.
    - Błąd: DomainError → czerwony panel, kod wyjścia 1.
    """
    payload: dict[str, Any] = {"title": title}
    for key, value in (
        ("id", task_id),
        ("description", desc),
        ("type", task_type),
        ("status", status),
        ("priority", priority),
        ("deadline", deadline),
        ("parentId", parent),
        ("assignee", assignee),
        ("storyPoints", points),
        ("epicId", epic),
        ("features", features or None),
    ):
        _put(payload, key, value)

    with domain_errors():
        task = get_service().create(payload)
    console.print(Panel.fit(f"✅ Task added\n{task.info()}", title="Success", border_style="green"))


@app.command("list")
def list_cmd(
    status: Optional[str] = Option(None, "--status", "-s"),
    priority: Optional[str] = Option(None, "--priority", "-p"),
    task_type: Optional[str] = Option(None, "--type", "-t"),
    created_from: Optional[str] = Option(None, "--from", help="createdAt >= (ISO 8601)"),
    created_to: Optional[str] = Option(None, "--to", help="createdAt <= (ISO 8601)"),
    as_json: bool = Option(False, "--json", help="Wypisz rekordy jako JSON"),
) -> None:
    """
    Listuje zadania; wszystkie podane filtry muszą być spełnione naraz.
    """
    params: dict[str, Any] = {}
    _put(params, "status", status)
    _put(params, "priority", priority)
    _put(params, "type", task_type)
    _put(params, "createdFrom", created_from)
    _put(params, "createdTo", created_to)

    svc = get_service()
    with domain_errors():
        items = svc.filter(params)
    if as_json:
        console.print_json(data=[t.to_record() for t in items])
        return
    render_list(items, svc.count())


@app.command("show")
def show(task_id: str, as_json: bool = Option(False, "--json")) -> None:
    """
    Pokazuje szczegóły pojedynczego zadania (podsumowanie zależne od typu).
    """
    with domain_errors():
        task = get_service().get_task(task_id)
    if as_json:
        console.print_json(data=task.to_record())
        return
    console.print(Panel.fit(task.info(), title="Task details", border_style="cyan"))


@app.command("update")
def update(
    task_id: str,
    title: Optional[str] = Option(None, "--title"),
    desc: Optional[str] = Option(None, "--desc", "-d"),
    status: Optional[str] = Option(None, "--status", "-s"),
    priority: Optional[str] = Option(None, "--priority", "-p"),
    deadline: Optional[str] = Option(None, "--deadline"),
    clear_deadline: bool = Option(False, "--clear-deadline", help="Usuń termin"),
    assignee: Optional[str] = Option(None, "--assignee", "-a"),
    points: Optional[int] = Option(None, "--points"),
    epic: Optional[str] = Option(None, "--epic"),
    features: Optional[list[str]] = Option(None, "--feature", help="Zastępuje listę funkcjonalności epiku"),
) -> None:
    """
    Częściowa aktualizacja: zmieniane są tylko podane pola.

    Pola wariantowe (assignee/points/epic/feature) na zadaniu innego typu
    są pomijane.
    """
    patch: dict[str, Any] = {}
    for key, value in (
        ("title", title),
        ("description", desc),
        ("status", status),
        ("priority", priority),
        ("deadline", deadline),
        ("assignee", assignee),
        ("storyPoints", points),
        ("epicId", epic),
        ("features", features or None),
    ):
        _put(patch, key, value)
    if clear_deadline:
        patch["deadline"] = None

    with domain_errors():
        task = get_service().update(task_id, patch)
    console.print(Panel.fit(f"✅ Task updated\n{task.info()}", title="Success", border_style="green"))


@app.command("done")
def done(task_id: str) -> None:
    """
    Oznacza zadanie jako zakończone (status="done").
    """
    with domain_errors():
        task = get_service().update(task_id, {"status": TaskStatus.DONE.value})
    console.print(Panel.fit(
        f"✅ Done! ID: {task.task_id}\n[dim]Title:[/dim] {task.title}\nStatus: {color_status(task.status)}",
        title="Success",
        border_style="green",
    ))


@app.command("rm")
def rm(task_id: str) -> None:
    """
    Usuwa zadanie (bez możliwości cofnięcia).
    """
    with domain_errors():
        get_service().delete(task_id)
    console.print(Panel.fit(
        f"🟡 Task deleted\nID: {task_id}",
        title="Deleted",
        border_style="yellow",
    ))


@app.command("ontime")
def ontime(
    task_id: str,
    at: Optional[str] = Option(None, "--at", help="Chwila zakończenia (ISO 8601); domyślnie teraz"),
) -> None:
    """
    Sprawdza, czy zakończenie w danej chwili mieści się w terminie zadania.
    Zadanie bez terminu jest zawsze na czas.
    """
    svc = get_service()
    with domain_errors():
        task = svc.get_task(task_id)
        on_time = svc.is_completed_before_deadline(task, at)
    deadline = format_instant(task.deadline) if task.deadline else "none"
    if on_time:
        console.print(f"{TaskColor.GREEN}on time{TaskColor.RESET} [dim](deadline: {deadline})[/dim]")
    else:
        console.print(f"{TaskColor.RED}late{TaskColor.RESET} [dim](deadline: {deadline})[/dim]")


@feature_app.command("add")
def feature_add(task_id: str, feature: str) -> None:
    """Dodaje funkcjonalność do epiku (duplikat nic nie zmienia)."""
    with domain_errors():
        task = get_service().add_feature(task_id, feature)
    console.print(Panel.fit(task.info(), title="Epic", border_style="green"))


@feature_app.command("remove")
def feature_remove(task_id: str, feature: str = Argument(..., help="Dokładna nazwa do usunięcia")) -> None:
    """Usuwa wszystkie wystąpienia funkcjonalności z epiku."""
    with domain_errors():
        task = get_service().remove_feature(task_id, feature)
    console.print(Panel.fit(task.info(), title="Epic", border_style="yellow"))


@app.command("demo")
def demo() -> None:
    """
    Pokazowy przebieg działania aplikacji w jednym procesie.

    - Tworzy po jednym zadaniu każdego typu.
    - Aktualizuje i sprawdza termin.
    - Usuwa jedno zadanie i filtruje po statusie.
    """
    svc = get_service()
    console.print(Panel.fit("🚀 Demo start", border_style="cyan"))

    with domain_errors():
        created = svc.create({"title": "New minimal task", "description": "Just demo", "deadline": "2025-10-20T00:00:00Z"})
        svc.create({
            "title": "Fix login button",
            "description": "Login button not working",
            "type": TaskType.BUG.value,
            "assignee": "John Doe",
            "priority": TaskPriority.HIGH.value,
        })
        story = svc.create({
            "title": "Implement user authentication",
            "description": "Add login and registration",
            "type": TaskType.STORY.value,
            "storyPoints": 5,
            "priority": TaskPriority.HIGH.value,
        })
        svc.create({
            "title": "User Management System",
            "description": "Complete user management features",
            "type": TaskType.EPIC.value,
            "features": ["Authentication", "User Profile", "Settings"],
        })
        svc.create({
            "title": "Add password validation",
            "description": "Validate password strength",
            "type": TaskType.SUBTASK.value,
            "parentId": story.task_id,
        })

        console.print("\n📋 After create:")
        render_list(svc.get_all(), svc.count())

        updated = svc.update(created.task_id, {"status": TaskStatus.DONE.value})
        console.print(Panel.fit(updated.info(), title="Updated", border_style="blue"))

        on_time = svc.is_completed_before_deadline(updated, "2025-10-19T20:00:00Z")
        console.print(f"Task \"{updated.title}\" completed on time? {on_time}")

        svc.delete(created.task_id)
        console.print(Panel.fit(f"🗑️ Deleted: {created.task_id}. Exists? {svc.get_by_id(created.task_id) is not None}", border_style="red"))

        console.print("\n📋 status=todo:")
        todo = svc.filter({"status": TaskStatus.TODO.value})
        render_list(todo, svc.count())

    console.print(Panel.fit("🏁 Demo finished", border_style="cyan"))


if __name__ == "__main__":
    app()
