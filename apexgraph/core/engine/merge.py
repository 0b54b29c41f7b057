"""
Variation merge engine (pure).

Collapses bundle requirements that would compile identically into one
shared variation. No I/O, no graph access; the input is never mutated.
"""

from __future__ import annotations

from apexgraph.core.models.apex import ApexInfo


def merge_apex_variations(
    apex_variations: list[ApexInfo],
    active_codenames: list[str] | tuple[str, ...] = (),
) -> tuple[list[ApexInfo], list[tuple[str, str]]]:
    """Deduplicate requirements into shared variations.

    Requirements are visited in variation-name order. Each one is keyed by
    ``ApexInfo.merged_name()``; the first requirement with a key becomes
    the representative (renamed to the key), later ones fold their
    ``in_apexes`` and ``updatable`` into it.

    Args:
        apex_variations: Requirements collected for one module.
        active_codenames: Codenames of releases still in development.

    Returns:
        ``(merged, aliases)``. ``aliases`` has one ``(original, merged)``
        pair per input requirement, in visiting order.
    """
    merged: list[ApexInfo] = []
    aliases: list[tuple[str, str]] = []
    seen: dict[str, int] = {}

    for info in sorted(apex_variations, key=lambda i: i.apex_variation_name):
        apex_name = info.apex_variation_name
        merged_name = info.merged_name(active_codenames)

        if merged_name in seen:
            target = merged[seen[merged_name]]
            for name in info.in_apexes:
                if name not in target.in_apexes:
                    target.in_apexes.append(name)
            target.updatable = target.updatable or info.updatable
        else:
            seen[merged_name] = len(merged)
            merged.append(
                info.model_copy(
                    update={
                        "apex_variation_name": merged_name,
                        "in_apexes": list(dict.fromkeys(info.in_apexes)),
                        "required_sdks": list(info.required_sdks),
                    }
                )
            )

        aliases.append((apex_name, merged_name))

    return merged, aliases
