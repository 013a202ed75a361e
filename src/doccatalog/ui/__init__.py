"""UI layer: event bus, domain store, controller and views."""
