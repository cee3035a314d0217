import logging
from typing import Any, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from ...models import SiteConfig
from .schemas import DEFAULT_HOME_HERO, HOME_HERO_KEY, HomeHeroConfig

logger = logging.getLogger(__name__)


class SiteConfigService:
    def __init__(self, db: Session):
        self.db = db

    def get_value(self, key: str) -> Optional[Any]:
        row = self.db.query(SiteConfig).filter(SiteConfig.key == key).first()
        return row.value if row else None

    def set_value(self, key: str, value: Any, updated_by_id: Optional[int] = None) -> SiteConfig:
        row = self.db.query(SiteConfig).filter(SiteConfig.key == key).first()
        if row:
            row.value = value
            row.updated_by_id = updated_by_id
        else:
            row = SiteConfig(key=key, value=value, updated_by_id=updated_by_id)
            self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def home_hero(self) -> HomeHeroConfig:
        """Stored hero config, or the defaults when unset or unreadable"""
        value = self.get_value(HOME_HERO_KEY)
        if not value:
            return DEFAULT_HOME_HERO
        try:
            return HomeHeroConfig.model_validate(value)
        except ValidationError as e:
            logger.warning(f"⚠️ Stored home hero config is invalid, serving defaults: {e}")
            return DEFAULT_HOME_HERO

    def save_home_hero(self, config: HomeHeroConfig, updated_by_id: Optional[int]) -> HomeHeroConfig:
        self.set_value(HOME_HERO_KEY, config.model_dump(), updated_by_id)
        return config
