# Application Utils Package
