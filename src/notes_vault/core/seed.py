"""Populate an empty vault with a small example campaign."""

from loguru import logger

from notes_vault.core.tree.store import NodeStore
from notes_vault.models.node import Node, NodeType


def _note(
    store: NodeStore,
    name: str,
    parent: Node,
    *,
    template: str,
    icon: str,
    markdown: str,
    fields: dict[str, str],
    tags: list[str],
    links: tuple[str, ...] = (),
    active: bool = False,
) -> Node:
    node = store.create_node(
        name, NodeType.LEAF, parent.id, template=template, icon=icon, active=active
    )
    store.select_node(node.id)
    current = store.current_content
    store.update_content(
        markdown=markdown,
        fields={**(current.fields if current else {}), **fields},
        tags=tuple(tags),
        links=links,
    )
    return node


def seed_example_vault(store: NodeStore) -> dict[str, Node]:
    """Create example folders and notes; returns the created nodes by name.

    Every folder on the way to a note is expanded, like a fresh install.
    """
    folder = NodeType.FOLDER
    npcs = store.create_node("NPCs", folder)
    trolls = store.create_node("Trolls", folder, npcs.id)
    emerald_trolls = store.create_node("Emerald Trolls", folder, trolls.id)
    locations = store.create_node("Locations", folder)
    swamps = store.create_node("Swamps", folder, locations.id)
    quests = store.create_node("Quests", folder)

    grahda = _note(
        store,
        "Grahda",
        emerald_trolls,
        template="npc",
        icon="🧌",
        active=True,
        markdown=(
            "# Grahda\n\n"
            "An ancient emerald troll who dwells in the deepest parts of the Midnight Marsh.\n\n"
            "## Role in Campaign\n"
            "Grahda guards the entrance to the Old Ruins."
        ),
        fields={
            "Role": "Guardian of the Old Ruins",
            "Species": "Emerald Troll",
            "Alignment": "Neutral",
            "Age": "340 years",
        },
        tags=["troll", "marsh", "quest-giver", "green-marsh"],
    )
    emerald_mire = _note(
        store,
        "Emerald Mire",
        swamps,
        template="location",
        icon="🌲",
        markdown=(
            "# The Emerald Mire\n\n"
            "A vast swamp known for its phosphorescent plant life.\n\n"
            "## Hazards\n- Quicksand patches\n- Will-o'-wisps that lead travelers astray"
        ),
        fields={"Type": "Swamp", "Region": "Western Marches", "Climate": "Temperate, humid"},
        tags=["swamp", "hazardous", "green-marsh"],
        links=(grahda.id,),
    )
    oil_quest = _note(
        store,
        "Oil in the Midnight Marsh",
        quests,
        template="quest",
        icon="📜",
        active=True,
        markdown=(
            "# Oil in the Midnight Marsh\n\n"
            "The village of Millbrook needs magical oil from the Emerald Mire."
        ),
        fields={"Level": "3-5", "Giver": "Mayor Elara of Millbrook", "Location": "Emerald Mire"},
        tags=["active", "millbrook", "emerald-mire", "side-quest"],
        links=(emerald_mire.id, grahda.id),
    )
    elara = _note(
        store,
        "Mayor Elara",
        npcs,
        template="npc",
        icon="👤",
        markdown="# Mayor Elara\n\nThe capable but stressed mayor of Millbrook.",
        fields={"Role": "Mayor of Millbrook", "Species": "Human"},
        tags=["millbrook", "quest-giver", "human"],
        links=(oil_quest.id,),
    )

    store.select_node(None)
    for leaf in (grahda, emerald_mire, oil_quest):
        store.expand_path(leaf.id)

    logger.info("Seeded example vault with {} nodes", len(store.nodes))
    return {
        n.name: n
        for n in (
            npcs, trolls, emerald_trolls, locations, swamps, quests,
            grahda, emerald_mire, oil_quest, elara,
        )
    }
