"""Pure domain layer: clock, order workflow, order requests, result DTOs."""
