class SeqLinkDBException(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class InvalidValue(SeqLinkDBException):
    def __init__(self, message: str = "Invalid Value"):
        super().__init__(message)


class ElementDoesNotExist(SeqLinkDBException):
    def __init__(self, message: str = "Element Does Not Exist"):
        super().__init__(message)


class NotUniqueValue(SeqLinkDBException):
    def __init__(self, message: str = "Value breaks not unique-constraint"):
        super().__init__(message)


class AmbiguousRunMatch(SeqLinkDBException):
    def __init__(self, message: str = "Run metadata matches more than one sequencing run"):
        super().__init__(message)
