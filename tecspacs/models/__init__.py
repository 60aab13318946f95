# Importing the models registers both tables on Base.metadata
from tecspacs.models.package import Package
from tecspacs.models.snippet import Snippet

__all__ = ["Package", "Snippet"]
