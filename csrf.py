import time

from itsdangerous import BadSignature, URLSafeTimedSerializer

from config import get_settings


def _serializer() -> URLSafeTimedSerializer:
    settings = get_settings()
    return URLSafeTimedSerializer(settings.csrf_secret, salt="cafeteria-csrf")


def generate_csrf_token(user_id: int, max_age_hours: int = 2) -> str:
    issued = int(time.time())
    token_data = {"u": user_id, "exp": issued + max_age_hours * 3600}
    return _serializer().dumps(token_data)


def validate_csrf_token(token: str, user_id: int, max_age_hours: int = 2) -> bool:
    if not token:
        return False
    try:
        data = _serializer().loads(token, max_age=max_age_hours * 3600)
    except BadSignature:
        return False

    if data.get("u") != user_id:
        return False
    return int(time.time()) <= data.get("exp", 0)
