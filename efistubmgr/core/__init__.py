"""Engine components: registry, discovery, builds, reconcile, coordination."""
