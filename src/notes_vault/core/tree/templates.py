"""Note templates: default icon and seed fields for new leaves."""

from dataclasses import dataclass, field

from notes_vault.models.node import DEFAULT_ICON


@dataclass(frozen=True)
class Template:
    name: str
    icon: str
    fields: dict[str, str] = field(default_factory=dict)


def _blank(*keys: str) -> dict[str, str]:
    return dict.fromkeys(keys, "")


TEMPLATES: dict[str, Template] = {
    "npc": Template(
        "npc",
        "👤",
        _blank(
            "Role", "Species", "Alignment", "Age",
            "Personality", "Appearance", "Motivations", "Secrets",
        ),
    ),
    "location": Template(
        "location",
        "🏰",
        _blank("Type", "Region", "Climate", "Population", "Ruler", "Notable Features"),
    ),
    "item": Template(
        "item",
        "🗡️",
        _blank("Type", "Rarity", "Attunement", "Value", "Weight", "Properties"),
    ),
    "quest": Template(
        "quest",
        "📜",
        {"Status": "Active", **_blank("Level", "Giver", "Reward", "Location", "Objective")},
    ),
    "monster": Template(
        "monster",
        "🐉",
        _blank("CR", "AC", "HP", "Speed", "Abilities", "Weaknesses", "Resistances"),
    ),
    "faction": Template(
        "faction",
        "⚔️",
        _blank("Type", "Alignment", "Leader", "Headquarters", "Goals", "Notable Members"),
    ),
}


def template_icon(template: str | None) -> str:
    """Icon for a template name, or the generic note icon."""
    if template and template in TEMPLATES:
        return TEMPLATES[template].icon
    return DEFAULT_ICON


def template_fields(template: str | None) -> dict[str, str]:
    """Fresh copy of a template's seed fields; empty for unknown templates."""
    if template and template in TEMPLATES:
        return dict(TEMPLATES[template].fields)
    return {}


def merge_template_fields(template: str, fields: dict[str, str]) -> dict[str, str]:
    """A template's fields with the given ones laid over them.

    Existing values win, so applying a template only adds missing keys.
    """
    if template not in TEMPLATES:
        msg = f"Unknown template {template!r} (choose from {', '.join(TEMPLATES)})"
        raise ValueError(msg)
    return {**TEMPLATES[template].fields, **fields}
