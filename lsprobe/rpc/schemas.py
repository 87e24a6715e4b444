"""Pydantic models for the language server's GetUserStatus response.

Field names follow the wire format's camelCase through aliases; every field
has a default so partial responses from older servers still validate.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, protected_namespaces=())


class ModelOrAlias(_CamelModel):
    model: str = ""


class QuotaInfo(_CamelModel):
    remaining_fraction: float = 0.0
    reset_time: str = ""


class ClientModelConfig(_CamelModel):
    label: str = ""
    model_or_alias: Optional[ModelOrAlias] = None
    supports_images: Optional[bool] = None
    is_recommended: bool = False
    allowed_tiers: list[str] = []
    quota_info: Optional[QuotaInfo] = None


class ModelGroup(_CamelModel):
    model_labels: list[str] = []


class ClientModelSort(_CamelModel):
    name: str = ""
    groups: list[ModelGroup] = []


class DefaultOverrideModelConfig(_CamelModel):
    model_or_alias: Optional[ModelOrAlias] = None


class CascadeModelConfigData(_CamelModel):
    client_model_configs: list[ClientModelConfig] = []
    client_model_sorts: list[ClientModelSort] = []
    default_override_model_config: Optional[DefaultOverrideModelConfig] = None


class DefaultTeamConfig(_CamelModel):
    allow_mcp_servers: bool = False
    allow_auto_run_commands: bool = False
    allow_browser_experimental_features: bool = False


class PlanInfo(_CamelModel):
    teams_tier: str = ""
    plan_name: str = ""
    has_autocomplete_fast_mode: bool = False
    allow_sticky_premium_models: bool = False
    allow_premium_command_models: bool = False
    has_tab_to_jump: bool = False
    max_num_premium_chat_messages: str = ""
    max_num_chat_input_tokens: str = ""
    max_custom_chat_instruction_characters: str = ""
    max_num_pinned_context_items: str = ""
    max_local_index_size: str = ""
    monthly_prompt_credits: int = 0
    monthly_flow_credits: int = 0
    monthly_flex_credit_purchase_amount: int = 0
    can_buy_more_credits: bool = False
    cascade_web_search_enabled: bool = False
    can_customize_app_icon: bool = False
    cascade_can_auto_run_commands: bool = False
    can_generate_commit_messages: bool = False
    knowledge_base_enabled: bool = False
    default_team_config: Optional[DefaultTeamConfig] = None
    can_allow_cascade_in_background: bool = False
    browser_enabled: bool = False


class PlanStatus(_CamelModel):
    plan_info: Optional[PlanInfo] = None
    available_prompt_credits: int = 0
    available_flow_credits: int = 0


class UserStatus(_CamelModel):
    disable_telemetry: bool = False
    name: str = ""
    email: str = ""
    plan_status: Optional[PlanStatus] = None
    cascade_model_config_data: Optional[CascadeModelConfigData] = None
    accepted_latest_terms_of_service: bool = False


class UserStatusResponse(_CamelModel):
    user_status: Optional[UserStatus] = None


class UserStatusRequest(BaseModel):
    """Body of POST /language-server/user-status."""
    api_key: str


class PortsResponse(BaseModel):
    log_path: str
    https: Optional[int] = None
    http: Optional[int] = None
    extension: Optional[int] = None
