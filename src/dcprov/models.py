from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class UserAuthData(ApiModel):
    method: str = "basic"
    must_change_password: Optional[bool] = None


class FirstAdminUser(ApiModel):
    first_name: str
    last_name: str
    user_name: Optional[str] = None
    auth_data: Optional[UserAuthData] = None
    receiver_language: Optional[str] = None
    notify_user: Optional[bool] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class KeyValueEntry(ApiModel):
    key: str
    value: str


class CustomerAttributes(ApiModel):
    items: List[KeyValueEntry] = []


class NewCustomerRequest(ApiModel):
    customer_contract_type: str
    quota_max: int
    user_max: int
    first_admin_user: FirstAdminUser
    company_name: Optional[str] = None
    trial_days: Optional[int] = None
    is_locked: Optional[bool] = None
    customer_attributes: Optional[CustomerAttributes] = None
    provider_customer_id: Optional[str] = None
    webhooks_max: Optional[int] = None


class UpdateCustomerRequest(ApiModel):
    company_name: Optional[str] = None
    quota_max: Optional[int] = None
    user_max: Optional[int] = None
