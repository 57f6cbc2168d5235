from django.utils.crypto import get_random_string

# 48 chars over [A-Za-z0-9] is ~285 bits of entropy and needs no URL escaping
TOKEN_LENGTH = 48


def generate_token() -> str:
    """Opaque bearer credential for anonymous survey access.

    Uniqueness is enforced by the unique constraint on SurveyInvitation.token;
    a collision surfaces as an IntegrityError on write, never as a reused token.
    """
    return get_random_string(TOKEN_LENGTH)
