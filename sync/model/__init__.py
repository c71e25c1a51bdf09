from sync.model.sync import SyncConfig, SyncResult

__all__ = ['SyncConfig', 'SyncResult']
