from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...access import Actor
from ...auth import require_boss
from ...database import get_db
from ..audit.service import AuditService
from .schemas import HomeHeroConfig
from .service import SiteConfigService

public_router = APIRouter(prefix="/public/site-config", tags=["Site Config"])
admin_router = APIRouter(prefix="/admin/site-config", tags=["Admin Site Config"])


def get_site_config_service(db: Session = Depends(get_db)) -> SiteConfigService:
    return SiteConfigService(db)


@public_router.get("/home-hero", response_model=HomeHeroConfig)
async def public_home_hero(service: SiteConfigService = Depends(get_site_config_service)):
    return service.home_hero()


@admin_router.get("/home-hero", response_model=HomeHeroConfig)
async def admin_home_hero(
    _: Actor = Depends(require_boss),
    service: SiteConfigService = Depends(get_site_config_service),
):
    return service.home_hero()


@admin_router.put("/home-hero", response_model=HomeHeroConfig)
async def update_home_hero(
    data: HomeHeroConfig,
    request: Request,
    actor: Actor = Depends(require_boss),
    db: Session = Depends(get_db),
):
    config = SiteConfigService(db).save_home_hero(data, actor.id)
    AuditService(db).log(actor, "SITE_CONFIG_UPDATE", "SITE_CONFIG", "home.hero", request=request)
    return config
