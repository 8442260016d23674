"""
3D print shop manager backend.

Multi-tenant organizations with invitation-based membership, role-gated
resource management, pricing, and live result-set subscriptions.
"""
