"""Chart release tooling: change detection, versioning, publishing and deploys."""
