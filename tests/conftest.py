"""Shared fixtures: a small plant seeded into the in-memory store.

Plant layout::

    Atelier A (g1): e1, e2      shares d1, d2, p5
    Ligne 2   (g2): e1          shares d6, p1, p2, p3, p5
    Ligne 3   (g3): e3          shares p6
    Ancien stock (g4): (none)   shares p7

    d3 -> e1, d4 -> e1 + e2, d6 -> e1      (direct document links)
    p4 -> e2 + e3                          (direct part links)
    d5: no link at all
    i1 -> e3                               (intervention)
    h1, h2 -> e1; h3 -> e3                 (history entries)
"""

from __future__ import annotations

from typing import Any

import pytest

from gmao.domain.deletion import DeletionEngine, DeletionSettings
from gmao.infra.persistence import InMemoryDataStore


def plant_tables() -> dict[str, list[dict[str, Any]]]:
    """Rows of the reference plant, fresh on every call."""
    return {
        "equipments": [
            {"id": "e1", "name": "Pompe P-101", "status": "active", "image_url": "eq/e1.png"},
            {"id": "e2", "name": "Compresseur C-12", "status": "active", "image_url": None},
            {"id": "e3", "name": "Four F-3", "status": "maintenance", "image_url": None},
        ],
        "equipment_groups": [
            {"id": "g1", "name": "Atelier A", "description": None},
            {"id": "g2", "name": "Ligne 2", "description": None},
            {"id": "g3", "name": "Ligne 3", "description": None},
            {"id": "g4", "name": "Ancien stock", "description": None},
        ],
        "equipment_group_members": [
            {"equipment_id": "e1", "group_id": "g1"},
            {"equipment_id": "e2", "group_id": "g1"},
            {"equipment_id": "e1", "group_id": "g2"},
            {"equipment_id": "e3", "group_id": "g3"},
        ],
        "documents": [
            {"id": f"d{n}", "name": name}
            for n, name in enumerate(
                [
                    "Manuel atelier",
                    "Plan de prévention",
                    "Notice P-101",
                    "Schéma hydraulique",
                    "Brouillon",
                    "Consignes ligne 2",
                ],
                start=1,
            )
        ],
        "document_group_members": [
            {"document_id": "d1", "group_id": "g1"},
            {"document_id": "d2", "group_id": "g1"},
            {"document_id": "d6", "group_id": "g2"},
        ],
        "document_equipment_links": [
            {"document_id": "d3", "equipment_id": "e1"},
            {"document_id": "d4", "equipment_id": "e1"},
            {"document_id": "d4", "equipment_id": "e2"},
            {"document_id": "d6", "equipment_id": "e1"},
        ],
        "parts": [
            {"id": "p1", "name": "Joint torique"},
            {"id": "p2", "name": "Roulement 6204"},
            {"id": "p3", "name": "Filtre à huile"},
            {"id": "p4", "name": "Courroie"},
            {"id": "p5", "name": "Fusible 10A"},
            {"id": "p6", "name": "Résistance"},
            {"id": "p7", "name": "Ancien moteur"},
        ],
        "part_group_members": [
            {"part_id": "p1", "group_id": "g2"},
            {"part_id": "p2", "group_id": "g2"},
            {"part_id": "p3", "group_id": "g2"},
            {"part_id": "p5", "group_id": "g2"},
            {"part_id": "p5", "group_id": "g1"},
            {"part_id": "p6", "group_id": "g3"},
            {"part_id": "p7", "group_id": "g4"},
        ],
        "part_equipment_links": [
            {"part_id": "p4", "equipment_id": "e2"},
            {"part_id": "p4", "equipment_id": "e3"},
        ],
        "interventions": [
            {"id": "i1", "equipment_id": "e3", "title": "Remplacement résistance"},
        ],
        "equipment_history": [
            {"id": "h1", "equipment_id": "e1", "description": "Mise en service"},
            {"id": "h2", "equipment_id": "e1", "description": "Changement de garniture"},
            {"id": "h3", "equipment_id": "e3", "description": "Mise en service"},
        ],
    }


def ids(rows: list[dict[str, Any]], column: str = "id") -> set[str]:
    return {row[column] for row in rows}


@pytest.fixture()
def deletion_settings() -> DeletionSettings:
    return DeletionSettings(
        block_on_interventions=True,
        default_cascade_empty_groups=True,
        max_concurrent_queries=4,
        lock_timeout_seconds=0.0,
    )


@pytest.fixture()
def store() -> InMemoryDataStore:
    """Transactional in-memory store seeded with the plant."""
    return InMemoryDataStore(plant_tables())


@pytest.fixture()
def plain_store() -> InMemoryDataStore:
    """Same plant on a store without transactions."""
    return InMemoryDataStore(plant_tables(), transactional=False)


@pytest.fixture()
def engine(store: InMemoryDataStore, deletion_settings: DeletionSettings) -> DeletionEngine:
    return DeletionEngine(store, deletion_settings)
