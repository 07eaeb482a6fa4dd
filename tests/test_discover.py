"""Tests for directory discovery and configuration."""

import os

import pytest

import gosub
import gosubtest


def test_path_discovery_src_first():
    """Package roots are searched as root/src/path before root/path."""
    fs = gosubtest.memfs({
        "/go/src/lib/a.go": "package lib\n",
        "/go/lib/a.go": "package lib\n",
    })
    discovery = gosub.PathDiscovery(["/go"], fs)
    assert discovery.find("lib") == os.path.join("/go", "src", "lib")


def test_path_discovery_root_order():
    """Roots are searched in order."""
    fs = gosubtest.memfs({
        "/first/x/y/a.go": "package y\n",
        "/second/src/x/y/a.go": "package y\n",
    })
    discovery = gosub.PathDiscovery(["/first", "/second"], fs)
    assert discovery.find("x/y") == os.path.join("/first", "x/y")


def test_path_discovery_not_found():
    """A missing package lists every searched directory."""
    discovery = gosub.PathDiscovery(["/go"], gosubtest.memfs())
    with pytest.raises(gosub.PackageNotFoundError) as exc_info:
        discovery.find("nope")
    message = str(exc_info.value)
    assert os.path.join("/go", "src", "nope") in message
    assert os.path.join("/go", "nope") in message


def test_tool_dir_discovery():
    """The tree above the tool directory is searched for the path."""
    fs = gosubtest.memfs({
        "/usr/local/Go/pkg/tool/linux_amd64/vet": "",
        "/usr/local/Go/src/text/strs/strs.go": "package strs\n",
    })
    discovery = gosub.ToolDirDiscovery("/usr/local/Go/pkg/tool/linux_amd64", fs)
    assert discovery.find("strs") == "/usr/local/Go/src/text/strs"
    assert discovery.find("text/strs") == "/usr/local/Go/src/text/strs"


def test_tool_dir_discovery_case_sensitive():
    """A case sensitive anchor does not match a differently cased directory."""
    fs = gosubtest.memfs({"/opt/Go/src/strs/strs.go": "package strs\n"})
    discovery = gosub.ToolDirDiscovery("/opt/Go/bin", fs, case_sensitive=True)
    with pytest.raises(gosub.PackageNotFoundError, match="not within the path"):
        discovery.find("strs")


def test_search_up_dir_path():
    assert gosub.search_up_dir_path("/a/go/b/c", "go") == "/a/go"
    assert gosub.search_up_dir_path("/a/GO/b", "go") == "/a/GO"
    with pytest.raises(gosub.PackageNotFoundError):
        gosub.search_up_dir_path("/a/b", "go")


def test_chain_discovery_unconfigured():
    """No strategy at all means the environment is not configured."""
    with pytest.raises(gosub.EnvironmentNotConfiguredError) as exc_info:
        gosub.ChainDiscovery([]).find("lib")
    assert isinstance(exc_info.value, gosub.LocationError)
    assert "GOSUBPATH" in str(exc_info.value)


def test_chain_discovery_first_match():
    fs = gosubtest.memfs({
        "/one/src/lib/a.go": "package lib\n",
        "/two/src/lib/a.go": "package lib\n",
    })
    chain = gosub.ChainDiscovery([
        gosub.PathDiscovery(["/one"], fs),
        gosub.PathDiscovery(["/two"], fs),
    ])
    assert chain.find("lib") == os.path.join("/one", "src", "lib")


def test_chain_discovery_reasons():
    """When every strategy fails the error holds each reason."""
    fs = gosubtest.memfs({"/opt/go/bin/tool": ""})
    chain = gosub.ChainDiscovery([
        gosub.PathDiscovery(["/gopath"], fs),
        gosub.ToolDirDiscovery("/opt/go/bin", fs),
    ])
    with pytest.raises(gosub.PackageNotFoundError) as exc_info:
        chain.find("lib")
    message = str(exc_info.value)
    assert "/gopath" in message
    assert "not within the path" in message


def test_default_discovery():
    fs = gosubtest.memfs()
    options = gosub.Options(gopath=["/go"], tool_dir="/opt/go/bin", filesystem=fs)
    chain = gosub.default_discovery(options)
    assert [type(s) for s in chain.strategies] == [gosub.PathDiscovery, gosub.ToolDirDiscovery]
    assert gosub.default_discovery(gosub.Options(filesystem=fs)).strategies == []


def test_options_from_environ():
    """Options are read from GOSUB environment variables."""
    environ = {
        "GOSUBPATH": os.pathsep.join(["/go", "/more"]),
        "GOSUBTOOLDIR": "/opt/go/pkg/tool",
        "GOSUBOS": "windows",
        "GOSUBARCH": "arm64",
        "GOSUBTAGS": "one, two",
    }
    options = gosub.Options.from_environ(environ, build_tags=["three"])
    assert options.gopath == ["/go", "/more"]
    assert options.tool_dir == "/opt/go/pkg/tool"
    assert options.goos == "windows"
    assert options.goarch == "arm64"
    assert options.build_tags == ["three"]


def test_options_from_empty_environ():
    options = gosub.Options.from_environ({})
    assert options.gopath == []
    assert options.tool_dir == ""
    assert options.goos == gosub.host_os()
    assert isinstance(options.filesystem, gosub.OSFileSystem)


def test_interp_uses_given_discovery(fs):
    """A discovery strategy in the options replaces the default chain."""
    fs.add("/elsewhere/lib/lib.go", "package lib\n")
    discovery = gosub.PathDiscovery(["/elsewhere"], fs)
    interp = gosubtest.make_interp(fs, discovery=discovery)
    assert interp.import_src(gosub.MAIN_ID, "lib") == "lib"
