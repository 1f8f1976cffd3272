"""Development JWT token generator"""
from jose import jwt
from datetime import datetime, timedelta, timezone
from ..core.config import settings


def generate_dev_token(nric: str = "S1234567A", role: str = "applicant") -> str:
    """
    Generate development JWT token

    Usage:
        token = generate_dev_token("T7654321B", role="manager")
        headers = {"Authorization": f"Bearer {token}"}
    """
    payload = {
        "sub": nric,
        "role": role,
        "iat": datetime.now(timezone.utc),
        "exp": datetime.now(timezone.utc) + timedelta(days=1),
    }

    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


if __name__ == "__main__":
    print("Development tokens:\n")
    for role in ["applicant", "officer", "manager"]:
        token = generate_dev_token(role=role)
        print(f"{role}:")
        print(f"  {token}\n")
