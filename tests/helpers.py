"""Shared constants and GraphQL documents for the test-suite."""

ADMIN_PASSWORD = "SuperAdmin123!"

LOGIN_QUERY = """
query Login($username: String!, $password: String!) {
  adminLogin(username: $username, password: $password) {
    success
    message
    requires2FA
    admin { id uuid username email fullName isActive permissions role { id name permissions } }
    session { token expiresAt }
  }
}
"""

VALIDATE_QUERY = """
query Validate($token: String!) {
  adminValidateSession(sessionToken: $token) {
    isValid
    expiresAt
    admin { username }
  }
}
"""

SECURITY_QUESTION_QUERY = """
query Question($username: String!) {
  getAdminByUsername(username: $username) { securityQuestion }
}
"""

VERIFY_2FA_MUTATION = """
mutation Verify($username: String!, $password: String!, $code: String!) {
  adminVerify2FA(username: $username, password: $password, code: $code) {
    success
    message
    requires2FA
    session { token }
  }
}
"""

LOGOUT_MUTATION = """
mutation Logout($token: String) {
  adminLogout(sessionToken: $token) { success message }
}
"""
