import ipaddress

from mdns.models import Question, RecordType, Service
from mdns.responder import answer_questions

A_SERVICE = Service("foo.local", ipaddress.IPv4Address("10.0.0.5"), RecordType.A, ttl=60)
PTR_SERVICE = Service("_svc._tcp.local", "_impl._tcp.local", RecordType.PTR)


def test_exact_domain_match_yields_one_answer():
    answers = answer_questions([Question("foo.local", RecordType.A)], [A_SERVICE, PTR_SERVICE])
    assert len(answers) == 1
    answer = answers[0]
    assert answer.domain == "foo.local"
    assert answer.type == RecordType.A
    assert answer.ttl == 60
    assert answer.data == ipaddress.IPv4Address("10.0.0.5")


def test_suffix_prefix_and_case_variants_do_not_match():
    for domain in ("local", "o.local", "foo.local.extra", "xfoo.local", "FOO.local"):
        assert answer_questions([Question(domain)], [A_SERVICE]) == []


def test_answers_collected_across_questions():
    questions = [Question("foo.local"), Question("_svc._tcp.local")]
    answers = answer_questions(questions, [A_SERVICE, PTR_SERVICE])
    assert [a.type for a in answers] == [RecordType.A, RecordType.PTR]


def test_duplicate_registrations_answer_twice():
    answers = answer_questions([Question("_svc._tcp.local")], [PTR_SERVICE, PTR_SERVICE])
    assert len(answers) == 2
