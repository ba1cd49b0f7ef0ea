from .routes_recommendations import router as recommendations_router
from .routes_movie_interactions import router as interactions_router
from .routes_lists import router as lists_router
from .routes_account import router as account_router
from .routes_movies import router as movies_router

# order matters: `/movies/{id}` lives in movies_router and must come last
all_routers = [
    recommendations_router,
    interactions_router,
    lists_router,
    account_router,
    movies_router,
]
