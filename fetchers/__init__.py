# fetchers/__init__.py
from . import steam

FETCHERS = {
    "steam": steam.fetch_all,
}
