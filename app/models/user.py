from sqlmodel import Field, SQLModel


class UserBase(SQLModel):
    email: str = Field(unique=True, index=True)
    full_name: str | None = None
    timezone: str | None = None  # IANA name; None falls back to settings.default_timezone


class User(UserBase, table=True):
    __tablename__ = "users"
    id: int | None = Field(default=None, primary_key=True)


class UserPublic(SQLModel):
    id: int
    email: str
    full_name: str | None = None
    timezone: str | None = None
