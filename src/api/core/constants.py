# Shared-secret header for service-to-service calls
INTERNAL_SERVICE_KEY_HEADER = "X-Internal-Service-Key"

# JWT Configuration
JWT_ALGORITHM = "HS256"

# Paths that skip request logging
SKIP_LOGGING_PATHS = {
    "/health",
    "/health/",
    "/health/liveness",
}
