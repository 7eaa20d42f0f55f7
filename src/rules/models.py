from typing import Literal

from pydantic import BaseModel, Field


class NewsletterRules(BaseModel):
    token_ttl_hours: int = Field(default=24, ge=1)
    token_bytes: int = Field(default=32, ge=16)
    frontend_url: str = "https://yourfrontend.com"
    confirmation_path: str = "/validate"
    site_name: str = "Newsletter"

class StorageRules(BaseModel):
    backend: Literal["memory", "dynamodb"] = "memory"
    table_name: str = "newsletter_subscribers"
    email_index_name: str = "email-index"
    region: str = "us-east-1"

class QueueRules(BaseModel):
    backend: Literal["memory", "sqs"] = "memory"
    queue_url: str = ""

class TimeoutRules(BaseModel):
    connect_seconds: float = Field(default=2.0, gt=0)
    read_seconds: float = Field(default=5.0, gt=0)
    max_attempts: int = Field(default=1, ge=1)

class OpsRules(BaseModel):
    required_env: list[str] = Field(default_factory=list)

class Rules(BaseModel):
    newsletter: NewsletterRules = Field(default_factory=NewsletterRules)
    storage: StorageRules = Field(default_factory=StorageRules)
    queue: QueueRules = Field(default_factory=QueueRules)
    timeouts: TimeoutRules = Field(default_factory=TimeoutRules)
    ops: OpsRules = Field(default_factory=OpsRules)
