# tests/test_detector.py

from httpids.http_message import HttpMessage
from httpids.matcher.detector import DetectionEvent, SignatureDetector, apply_rules
from httpids.rules.parser import Rule, parse_rule_line, parse_rules

FLOW = ("10.0.0.1", 51000, "10.0.0.2", 80)


def admin_request(path="/ADMIN"):
    return HttpMessage.request("GET", path, headers=[("Host", "intranet")])


def test_nocase_content_matches_request_line():
    rule = parse_rule_line('alert http any any -> any any (content:"GET /admin"; msg:"admin"; sid:1001; nocase;)')
    events = apply_rules([rule], admin_request(), *FLOW)
    assert events == [DetectionEvent("ALERT", 1001, "admin", "10.0.0.1", 51000, "10.0.0.2", 80)]


def test_label_follows_action():
    rules = parse_rules([
        'block http any any -> any any (content:"Host"; sid:1;)',
        'log http any any -> any any (content:"Host"; sid:2;)',
        'alert http any any -> any any (content:"Host"; sid:3;)',
    ])
    events = apply_rules(rules, admin_request(), *FLOW)
    assert [e.label for e in events] == ["BLOCK", "LOG", "ALERT"]


def test_content_is_case_sensitive_without_nocase():
    rule = parse_rule_line('alert http any any -> any any (content:"Secret"; sid:1;)')
    msg = HttpMessage.request("POST", "/login", body="password=secret")
    assert apply_rules([rule], msg, *FLOW) == []

    msg = HttpMessage.request("POST", "/login", body="password=Secret")
    assert len(apply_rules([rule], msg, *FLOW)) == 1


def test_source_port_must_match_exactly():
    rule = parse_rule_line('alert http any 80 -> any any (sid:1;)')
    msg = admin_request()
    assert apply_rules([rule], msg, "10.0.0.1", 8080, "10.0.0.2", 443) == []
    assert len(apply_rules([rule], msg, "10.0.0.1", 80, "10.0.0.2", 443)) == 1


def test_addresses_must_match_exactly():
    rule = parse_rule_line('alert http 10.0.0.1 any -> 10.0.0.2 any (sid:1;)')
    msg = admin_request()
    assert len(apply_rules([rule], msg, *FLOW)) == 1
    assert apply_rules([rule], msg, "10.0.0.10", 51000, "10.0.0.2", 80) == []
    assert apply_rules([rule], msg, "10.0.0.1", 51000, "10.0.0.20", 80) == []


def test_udp_rules_never_fire():
    rule = parse_rule_line('alert udp any any -> any any (content:"GET"; sid:1;)')
    assert apply_rules([rule], admin_request(), *FLOW) == []


def test_any_and_tcp_rules_fire():
    rules = parse_rules([
        'alert any any any -> any any (sid:1;)',
        'alert tcp any any -> any any (sid:2;)',
    ])
    assert [e.sid for e in apply_rules(rules, admin_request(), *FLOW)] == [1, 2]


def test_empty_content_always_matches():
    rule = Rule(sid=42, msg="everything")
    events = apply_rules([rule], HttpMessage.response(204), *FLOW)
    assert [e.sid for e in events] == [42]


def test_all_matching_rules_fire_in_declaration_order():
    rules = parse_rules([
        'alert http any any -> any any (content:"intranet"; sid:20;)',
        'alert http any any -> any any (content:"nomatch"; sid:30;)',
        'alert http any any -> any any (content:"admin"; nocase; sid:10;)',
    ])
    events = apply_rules(rules, admin_request(), *FLOW)
    assert [e.sid for e in events] == [20, 10]


def test_content_found_in_headers_and_body():
    msg = HttpMessage.response(200, "OK", headers=[("Server", "Apache/2.2.3")], body=b"root:x:0:0")
    rules = parse_rules([
        'alert http any any -> any any (content:"Server: Apache/2.2"; sid:1;)',
        'alert http any any -> any any (content:"root:x:0:0"; sid:2;)',
        'alert http any any -> any any (content:"HTTP/1.1 200 OK"; sid:3;)',
    ])
    assert [e.sid for e in apply_rules(rules, msg, *FLOW)] == [1, 2, 3]


def test_custom_endpoint_matcher():
    def prefix_match(want, have):
        return want == "any" or have.startswith(want)

    rule = parse_rule_line('alert http 10.0.0. any -> any any (sid:1;)')
    detector = SignatureDetector([rule], endpoint_matcher=prefix_match)
    assert len(detector.match(admin_request(), *FLOW)) == 1
    assert detector.match(admin_request(), "192.168.0.1", 1, "10.0.0.2", 80) == []


def test_detector_does_not_mutate_inputs():
    rules = parse_rules(['alert http any any -> any any (content:"admin"; nocase; sid:1;)'])
    msg = admin_request()
    before_rules = list(rules)
    before_headers = list(msg.headers)

    detector = SignatureDetector(rules)
    detector.match(msg, *FLOW)
    detector.match(msg, *FLOW)

    assert rules == before_rules
    assert msg.headers == before_headers
    assert msg.path == "/ADMIN"


def test_event_to_dict():
    event = DetectionEvent("LOG", 5, "m", "1.1.1.1", 1, "2.2.2.2", 2)
    assert event.to_dict() == {
        "label": "LOG", "sid": 5, "msg": "m",
        "src_ip": "1.1.1.1", "src_port": 1, "dst_ip": "2.2.2.2", "dst_port": 2,
    }


def test_nocase_folds_ascii_only():
    kelvin = parse_rule_line('alert http any any -> any any (content:"\u212a"; nocase; sid:1;)')
    plain_k = parse_rule_line('alert http any any -> any any (content:"K"; nocase; sid:2;)')
    msg = HttpMessage.request("GET", "/k")
    # the Kelvin sign is not an ASCII letter, so it does not match "k"
    assert [e.sid for e in apply_rules([kelvin, plain_k], msg, *FLOW)] == [2]

    dotted = parse_rule_line('alert http any any -> any any (content:"\u0130d"; nocase; sid:3;)')
    msg = HttpMessage.request("GET", "/\u0130D")
    assert [e.sid for e in apply_rules([dotted], msg, *FLOW)] == [3]
