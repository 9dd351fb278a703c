from app.core.security import create_access_token

POWER_EMAIL = "root@noticeboard.edu"
DEFAULT_PASSWORD = "password123"


def auth_headers(user) -> dict:
    token = create_access_token(subject=str(user.id), data={"role": user.role.value})
    return {"Authorization": f"Bearer {token}"}
