"""easypack command line interface."""
