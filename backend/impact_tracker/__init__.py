"""Impact Tracker backend: donor credit attribution and evidence coverage."""
