version_control = {
    "version": "1.0.0",
}
