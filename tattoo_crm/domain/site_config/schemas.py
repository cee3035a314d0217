from pydantic import BaseModel, Field

HOME_HERO_KEY = "home.hero"


class HeroStat(BaseModel):
    value: str = Field(min_length=1, max_length=20)
    label: str = Field(min_length=1, max_length=30)


class HomeHeroConfig(BaseModel):
    imageUrl: str = Field(min_length=1)
    imageAlt: str = Field(min_length=1, max_length=500)
    badgeText: str = Field(min_length=1, max_length=80)
    headlineLines: list[str] = Field(min_length=1, max_length=4)
    description: str = Field(min_length=1, max_length=600)
    primaryCtaText: str = Field(min_length=1, max_length=30)
    stats: list[HeroStat] = Field(min_length=4, max_length=4)


DEFAULT_HOME_HERO = HomeHeroConfig(
    imageUrl="/images/banner/tattoo-monk.jpg",
    imageAlt="Tattoo artist working on a detailed piece",
    badgeText="Premium Tattoo Studio",
    headlineLines=["Made for people who love ink", "A studio experience of your own"],
    description="Book, manage and follow every tattoo journey in one place.",
    primaryCtaText="Book now",
    stats=[
        HeroStat(value="1200+", label="Finished pieces"),
        HeroStat(value="15", label="Resident artists"),
        HeroStat(value="98%", label="Client satisfaction"),
        HeroStat(value="24/7", label="Online consultation"),
    ],
)
