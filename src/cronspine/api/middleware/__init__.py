"""API middleware package.

Tags:
    cronspine, api, middleware

Doc-Types:
    api-reference
"""
