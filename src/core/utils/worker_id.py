"""Worker ID generation using coolnames for unique, memorable identifiers."""

from coolname import generate_slug


def generate_worker_id(prefix: str = "") -> str:
    """Generate a worker ID such as ``event-generator-brave-golden-tiger``.

    Human-readable ids are easier to follow across generator and processor
    logs than hostnames or UUIDs.
    """
    slug = generate_slug(3)
    return f"{prefix}-{slug}" if prefix else slug
