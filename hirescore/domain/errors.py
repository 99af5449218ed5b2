class ConcurrencyConflict(Exception):
    """Raised by the store when a conditional write finds its expected version gone.

    Services catch it, roll the transaction back and retry the whole
    check-and-set; it never escapes to callers.
    """

    def __init__(self, entity_type: str, entity_id, expected_version=None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_version = expected_version
        super().__init__(
            f"{entity_type} {entity_id} no longer at version {expected_version}"
            if expected_version is not None
            else f"{entity_type} {entity_id} was modified concurrently"
        )


__all__ = ["ConcurrencyConflict"]
