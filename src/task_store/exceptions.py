"""Task Storeのカスタム例外定義

ストアが呼び出し側に見せるエラーはInvalidStatusErrorのみ。
CorruptedSlotErrorはストア内部で捕捉され、デフォルト値へのフォールバックとログ出力に変換される。
"""


class TaskStoreError(Exception):
    """Task Store基底例外"""

    pass


class CorruptedSlotError(TaskStoreError):
    """永続化スロットの内容が解析できない"""

    def __init__(self, slot: str, reason: str):
        super().__init__(f"slot '{slot}' is corrupted: {reason}")
        self.slot = slot
        self.reason = reason


class InvalidStatusError(TaskStoreError, ValueError):
    """Pending / In Progress / Done 以外のステータス"""

    pass
