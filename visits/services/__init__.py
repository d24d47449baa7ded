from .admission import VisitAdmissionService

__all__ = ['VisitAdmissionService']
