"""
Approvals application: account registration and the approval workflow.
"""
