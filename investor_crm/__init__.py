"""
Investor CRM backend
"""
