from datetime import datetime

from pydantic import EmailStr

from signdesk.schemas.common import IDModel, Timestamped


class UserRead(IDModel, Timestamped):
    email: EmailStr
    full_name: str
    is_active: bool
    last_login_at: datetime | None = None
