import unittest

from tests.base import FollowableTestCase
from tests.models import Organization, Team, User


class TestEntityScopes(FollowableTestCase):
    def setUp(self):
        super().setUp()
        self.user1 = self._user("Alice")
        self.user2 = self._user("Bob")
        self.user3 = self._user("Charlie")
        self.team1 = self._team("Team Alpha")
        self.team2 = self._team("Team Beta")

    def test_entities_following(self):
        self.service.follow(self.user1, self.team1)
        self.service.follow(self.user2, self.team1)
        self.service.follow(self.user3, self.team2)

        users = self.service.entities_following(User, self.team1).all()

        self.assertEqual(self._ids(users), [self.user1.id, self.user2.id])

    def test_entities_followed_by(self):
        self.service.follow(self.user1, self.team1)
        self.service.follow(self.user1, self.team2)
        self.service.follow(self.user2, self.team2)

        teams = self.service.entities_followed_by(Team, self.user1).all()

        self.assertEqual(self._ids(teams), [self.team1.id, self.team2.id])

    def test_scopes_are_chainable(self):
        self.service.follow(self.user1, self.team1)
        self.service.follow(self.user2, self.team1)

        query = (
            self.service.entities_following(User, self.team1)
            .filter(User.name == "Bob")
        )

        self.assertEqual([user.id for user in query.all()], [self.user2.id])
        self.assertEqual(query.count(), 1)

    def test_scope_with_reference_counterpart(self):
        self.service.follow(self.user1, self.team1)

        users = self.service.entities_following(User, (Team, self.team1.id)).all()

        self.assertEqual([user.id for user in users], [self.user1.id])

    def test_bare_id_counterpart_is_of_the_model_type(self):
        self.service.follow(self.user1, self.user2)
        self.service.follow(self.user3, self.user2)

        users = self.service.entities_following(User, self.user2.id).all()

        self.assertEqual(self._ids(users), [self.user1.id, self.user3.id])

    def test_scopes_keep_types_apart(self):
        self.assertEqual(self.user1.id, self.team1.id)
        self.service.follow(self.user2, self.team1)

        self.assertEqual(self.service.entities_following(User, self.user1).all(), [])
        self.assertEqual(self.service.entities_followed_by(User, self.user2).all(), [])

    def test_empty_scopes(self):
        self.assertEqual(self.service.entities_following(User, self.team1).all(), [])
        self.assertEqual(self.service.entities_followed_by(Organization, self.user1).all(), [])

    def test_type_only_counterpart_matches_nothing(self):
        self.service.follow(self.user1, self.team1)

        self.assertEqual(self.service.entities_following(User, Team).all(), [])


if __name__ == "__main__":
    unittest.main()
