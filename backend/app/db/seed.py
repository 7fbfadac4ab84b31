"""Seed script with a small demo shop floor.

Four assemblers, one user per role, and six cards spread over three lanes
with a dependency chain M4/S4 -> M5 -> M6 and E7 -> E8.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.init_db import count_rows
from app.models.assembler import Assembler
from app.models.assembly_card import AssemblyCard
from app.models.user import User

# Fixed UUIDs for deterministic seeding
USER_IDS = {
    "admin": uuid.UUID("d0000000-0000-0000-0000-000000000001"),
    "production_supervisor": uuid.UUID("d0000000-0000-0000-0000-000000000002"),
    "scheduler": uuid.UUID("d0000000-0000-0000-0000-000000000003"),
    "material_handler": uuid.UUID("d0000000-0000-0000-0000-000000000004"),
    "assembler": uuid.UUID("d0000000-0000-0000-0000-000000000005"),
}

ASSEMBLER_IDS = {
    "Turbo 505": uuid.UUID("e0000000-0000-0000-0000-000000000001"),
    "Precision 200": uuid.UUID("e0000000-0000-0000-0000-000000000002"),
    "Assembly 300": uuid.UUID("e0000000-0000-0000-0000-000000000003"),
    "QC Station": uuid.UUID("e0000000-0000-0000-0000-000000000004"),
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _create_users() -> list[User]:
    names = {
        "admin": "Alex Admin",
        "production_supervisor": "Pat Supervisor",
        "scheduler": "Sam Scheduler",
        "material_handler": "Morgan Handler",
        "assembler": "Jordan Builder",
    }
    return [
        User(id=USER_IDS[role], name=name, email=f"{role}@shopfloor.local", role=role)
        for role, name in names.items()
    ]


def _create_assemblers() -> list[Assembler]:
    """One lane per work center type."""
    return [
        Assembler(
            id=ASSEMBLER_IDS["Turbo 505"],
            name="Turbo 505",
            type="mechanical",
            status="available",
            assigned_user=USER_IDS["assembler"],
        ),
        Assembler(id=ASSEMBLER_IDS["Precision 200"], name="Precision 200", type="electrical", status="available"),
        Assembler(id=ASSEMBLER_IDS["Assembly 300"], name="Assembly 300", type="final", status="busy"),
        Assembler(id=ASSEMBLER_IDS["QC Station"], name="QC Station", type="qc", status="available"),
    ]


def _create_cards() -> list[AssemblyCard]:
    now = _now()
    turbo = ASSEMBLER_IDS["Turbo 505"]
    precision = ASSEMBLER_IDS["Precision 200"]
    final = ASSEMBLER_IDS["Assembly 300"]
    return [
        AssemblyCard(
            card_number="M4", name="Base Frame", type="M", phase=1, duration=4.0,
            assigned_to=turbo, position=0, status="assembling",
            dependencies=[], precedents=["M5"],
            start_time=now, last_resumed_at=now, elapsed_time=0,
        ),
        AssemblyCard(
            card_number="S4", name="Sub Assembly", type="S", phase=2, duration=3.0,
            assigned_to=turbo, position=1, status="scheduled", sub_assy_area=1,
            dependencies=[], precedents=["M5"], elapsed_time=0,
        ),
        AssemblyCard(
            card_number="M5", name="M1 Frame ASSY", type="M", phase=2, duration=6.0,
            assigned_to=turbo, position=2, status="blocked", previous_status="ready_for_build",
            dependencies=["M4", "S4"], precedents=["M6"], elapsed_time=0,
        ),
        AssemblyCard(
            card_number="E7", name="Wiring Harness", type="E", phase=3, duration=5.0,
            assigned_to=precision, position=0, status="assembling",
            dependencies=[], precedents=["E8"],
            start_time=now, last_resumed_at=now, elapsed_time=0,
        ),
        AssemblyCard(
            card_number="E8", name="Control Panel", type="E", phase=4, duration=4.0,
            assigned_to=precision, position=1, status="scheduled",
            dependencies=["E7"], precedents=[], elapsed_time=0,
        ),
        AssemblyCard(
            card_number="M6", name="Final Assembly", type="M", phase=1, duration=8.0,
            assigned_to=final, position=0, status="scheduled",
            dependencies=["M5"], precedents=[], elapsed_time=0,
        ),
    ]


async def seed_demo_data(session: AsyncSession) -> dict[str, int]:
    """Insert the demo users, assemblers and cards."""
    users = _create_users()
    session.add_all(users)
    await session.flush()

    assemblers = _create_assemblers()
    session.add_all(assemblers)
    await session.flush()

    cards = _create_cards()
    session.add_all(cards)
    await session.flush()

    return {
        "users": len(users),
        "assemblers": len(assemblers),
        "assembly_cards": len(cards),
    }


async def seed_if_empty(session: AsyncSession) -> dict[str, int] | None:
    """Seed demo data only if no assembler exists yet.

    Returns:
        Seed counts if data was seeded, None if database already has data.
    """
    if await count_rows(session, Assembler) > 0:
        return None

    return await seed_demo_data(session)
