from .auth import Principal, PrincipalResponse, Token, UserCreate, UserLogin
from .report import IMAGE_UNAVAILABLE, ReportDocument, ReportField, ReportImage
from .scan import ScanDraft, ScanResponse

__all__ = [
    "IMAGE_UNAVAILABLE",
    "Principal",
    "PrincipalResponse",
    "ReportDocument",
    "ReportField",
    "ReportImage",
    "ScanDraft",
    "ScanResponse",
    "Token",
    "UserCreate",
    "UserLogin",
]
