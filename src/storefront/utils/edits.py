from protean.exceptions import ValidationError


def check_clear(clear, changes: dict, clearable) -> None:
    """Reject clears of required fields, and a field that is both set and cleared."""
    errors = {}
    for field in clear:
        if field not in clearable:
            errors[field] = ["Field cannot be cleared"]
        elif changes.get(field) is not None:
            errors[field] = ["Field cannot be set and cleared at once"]
    if errors:
        raise ValidationError(errors)
