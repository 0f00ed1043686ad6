# usagewatch/services/errors.py


class UsageWatchError(Exception):
    pass


# (a) transient I/O failure: retried on the next scheduled pass
class RemoteSyncError(UsageWatchError):
    def __init__(self, collection: str, key: str, cause: Exception = None):
        self.collection = collection
        self.key = key
        self.cause = cause
        super().__init__(f"Remote write failed for {collection}/{key}: {cause}")


# (b) data-shape failure: a shared-state key holds something unexpected
class MalformedStateError(UsageWatchError):
    def __init__(self, key: str, reason: str):
        self.key = key
        super().__init__(f"Malformed shared state at '{key}': {reason}")


# Cross-write between reporting-owned and scheduler-owned key families
class KeyOwnershipError(UsageWatchError):
    def __init__(self, key: str, owner: str):
        self.key = key
        super().__init__(f"Key '{key}' is not owned by the {owner} family")


class RecordNotFoundError(UsageWatchError):
    def __init__(self, collection: str, key: str):
        self.collection = collection
        self.key = key
        super().__init__(f"No record {collection}/{key}")


class RecordOwnershipError(UsageWatchError):
    def __init__(self, key: str, owner_id: str):
        self.key = key
        super().__init__(f"Record {key} does not belong to owner {owner_id}")


class AlreadyProcessedError(UsageWatchError):
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Record {key} was already processed")
