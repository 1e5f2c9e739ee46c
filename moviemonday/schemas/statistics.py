from moviemonday.schemas.base import CamelModel


class StatisticsResponse(CamelModel):
    total_movie_mondays: int = 0
    total_meals_shared: int = 0
    total_cocktails_consumed: int = 0
