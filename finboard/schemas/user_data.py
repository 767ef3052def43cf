from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from finboard.schemas.ledger import Portfolio


class PreferenceSet(BaseModel):
    preferred: List[str] = Field(default_factory=list)
    excluded: List[str] = Field(default_factory=list)


class UserProfile(BaseModel):
    name: str = "New User"
    risk_tolerance: str = "Moderate"
    investment_goals: List[str] = Field(default_factory=lambda: ["Wealth Building"])
    available_capital: float = 50000
    sub_goals: List[str] = Field(default_factory=lambda: ["Long-term Growth"])
    asset_preferences: PreferenceSet = Field(
        default_factory=lambda: PreferenceSet(preferred=["Stock", "ETF"], excluded=[])
    )
    sector_preferences: PreferenceSet = Field(
        default_factory=lambda: PreferenceSet(preferred=["Technology", "Green Energy"], excluded=["Fossil Fuels"])
    )
    tax_considerations: List[str] = Field(default_factory=lambda: ["Tax-loss Harvesting"])

    model_config = ConfigDict(extra="ignore")


class UserData(BaseModel):
    """The whole per-user document handed to persistence as one snapshot."""

    user_profile: UserProfile = Field(
        default_factory=UserProfile,
        validation_alias=AliasChoices("user_profile", "userProfile"),
    )
    portfolios: List[Portfolio] = Field(default_factory=list)
    active_portfolio_id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("active_portfolio_id", "activePortfolioId"),
    )
    # budget worksheets are owned by another part of the app and passed through untouched
    budgets: List[Dict[str, Any]] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("portfolios", "budgets", mode="before")
    @classmethod
    def _none_as_empty(cls, v):
        return [] if v is None else v

    @field_validator("user_profile", mode="before")
    @classmethod
    def _default_profile(cls, v):
        return UserProfile() if v is None else v

    def find_portfolio(self, portfolio_id: int) -> Optional[Portfolio]:
        return next((p for p in self.portfolios if p.id == portfolio_id), None)
