class CatalogError(Exception):
    """
    Base class for catalog domain errors.
    Carries a short machine readable code next to the message.
    """
    def __init__(self, message, code="catalog_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class UnknownSortingError(CatalogError):
    def __init__(self, sorting):
        self.sorting = sorting
        super().__init__(f"Unknown product sorting: {sorting!r}", code="unknown_sorting")
