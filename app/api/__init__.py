
from . import encode, konvertor, stem_splitter

routers = [
    stem_splitter.router,
    konvertor.router,
    encode.router,
]

__all__ = [
    "routers",
]
