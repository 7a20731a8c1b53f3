import restsarsa


def test_package_metadata():
    assert restsarsa.__version__ == "1.0.0"
    assert restsarsa.__author__ == "restsarsa developers"


def test_public_api_exports():
    for name in restsarsa.__all__:
        assert hasattr(restsarsa, name), name
