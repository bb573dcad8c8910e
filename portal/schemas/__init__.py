from .common import ErrorResponse, MessageResponse, ORMModel, UserBrief, UTCDateTime

__all__ = ['ErrorResponse', 'MessageResponse', 'ORMModel', 'UserBrief', 'UTCDateTime']
