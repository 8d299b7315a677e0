from vehnt.persistence.sqlite.lockups_repo import SqliteLockupsRepo
from vehnt.persistence.sqlite.pools_repo import SqlitePoolsRepo
from vehnt.persistence.sqlite.positions_repo import SqlitePositionsRepo

__all__ = ["SqliteLockupsRepo", "SqlitePoolsRepo", "SqlitePositionsRepo"]
