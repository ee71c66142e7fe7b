from geoenrich.cli import parse_args


def test_parse_args_defaults():
    args = parse_args(["enrich"])
    assert args.command == "enrich"
    assert args.address_field == "address"
    assert args.overlay_config_dir is None
    assert args.cache_url is None
    assert args.strict is False


def test_parse_args_accepts_overrides():
    args = parse_args(["check-config", "--address-field", "street", "--cache-url", "memory://", "--strict"])
    assert args.command == "check-config"
    assert args.address_field == "street"
    assert args.cache_url == "memory://"
    assert args.strict is True
