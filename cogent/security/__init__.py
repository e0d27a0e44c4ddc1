from cogent.security.approval import ApprovalGate, ApprovalPolicy

__all__ = ["ApprovalGate", "ApprovalPolicy"]
