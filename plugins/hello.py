# Prepends a greeting; shows the host bindings available to every plugin.


def main(text):
    log("hello plugin running on host", HOST_VERSION)
    return greet("TextUtil") + "\n" + text
