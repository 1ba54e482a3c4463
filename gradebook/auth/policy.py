from gradebook.models.user import ROLE_ADMIN


def allows(required_role: str, caller_role: str | None) -> bool:
    """Return True when ``caller_role`` satisfies ``required_role``.

    Admin is a superset of every other role.
    """
    if not caller_role:
        return False
    return caller_role == required_role or caller_role == ROLE_ADMIN
