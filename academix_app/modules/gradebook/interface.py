from .services.gradebook_service import GradebookService
from .services.score_sync_service import ScoreSyncService
from .services.sync_queue_service import SyncQueueService


class GradebookInterface:
    """
    Public gateway of the gradebook module.
    Pattern: Facade
    """

    @staticmethod
    def gradebooks(**collaborators) -> GradebookService:
        return GradebookService(**collaborators)

    @staticmethod
    def score_sync(**collaborators) -> ScoreSyncService:
        return ScoreSyncService(**collaborators)

    @staticmethod
    def sync_queue(**kwargs) -> SyncQueueService:
        return SyncQueueService(**kwargs)
