"""HTTP client helpers: executors, status handlers, GraphQL and client hooks."""