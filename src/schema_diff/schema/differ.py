"""Generic attribute comparison shared by every structural model."""

from collections.abc import Iterable

from schema_diff.schema.results import AttributeDifference

# (attribute name, source value, destination value)
AttributeTriple = tuple[str, object, object]


def display_value(value: object) -> str | None:
    """Render an attribute value the way it appears in an AttributeDifference.

    Booleans become ``"true"``/``"false"``, lists and tuples are joined with
    ``", "``, ``None`` stays ``None`` and everything else goes through ``str``.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    return str(value)


def diff_attributes(triples: Iterable[AttributeTriple]) -> list[AttributeDifference]:
    """Compare attribute pairs and return one difference per mismatch.

    Comparison is exact and case-sensitive on the displayed values. ``None``
    and ``""`` are distinct, so a default going from ``""`` to absent is
    reported.

    Args:
        triples: Ordered (name, source value, destination value) triples

    Returns:
        Differences in the order of the triples
    """
    differences = []
    for name, source, destination in triples:
        source_text = display_value(source)
        destination_text = display_value(destination)
        if source_text != destination_text:
            differences.append(
                AttributeDifference(
                    attribute_name=name,
                    source_value=source_text,
                    destination_value=destination_text,
                )
            )
    return differences
