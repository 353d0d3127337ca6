def reject_null(value):
    """Partial updates may omit a field but may not clear a required one."""
    if value is None:
        raise ValueError("Field cannot be null")
    return value
