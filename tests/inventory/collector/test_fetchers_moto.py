"""
tests/inventory/collector/test_fetchers_moto.py - built-in fetchers against moto
"""

import boto3
import pytest

from inventory.auth import AccountDescriptor, Credentials, StaticCredentialProvider
from inventory.collector import Collector, CollectorConfig
from inventory.collector.fetchers import ec2, ecs, eks, rds, s3
from inventory.parallel import RetryConfig

moto = pytest.importorskip("moto")
mock_aws = moto.mock_aws

REGION = "us-east-1"
MOTO_ACCOUNT = "123456789012"


@pytest.fixture
def aws():
    with mock_aws():
        yield boto3.Session(region_name=REGION)


def _image_id(session) -> str:
    images = session.client("ec2").describe_images(Owners=["amazon"])["Images"]
    return images[0]["ImageId"]


class TestEc2Fetchers:
    """fetch_instances / fetch_vpcs"""

    def test_instances(self, aws):
        client = aws.client("ec2")
        client.run_instances(
            ImageId=_image_id(aws),
            MinCount=2,
            MaxCount=2,
            InstanceType="t3.micro",
            TagSpecifications=[{"ResourceType": "instance", "Tags": [{"Key": "Name", "Value": "web"}]}],
        )

        instances = ec2.fetch_instances(aws, REGION)

        assert len(instances) == 2
        assert all(i["InstanceType"] == "t3.micro" for i in instances)

    def test_vpcs_with_subnets(self, aws):
        client = aws.client("ec2")
        vpc_id = client.create_vpc(CidrBlock="10.10.0.0/16")["Vpc"]["VpcId"]
        subnet_id = client.create_subnet(VpcId=vpc_id, CidrBlock="10.10.1.0/24")["Subnet"]["SubnetId"]

        vpcs = {v["VpcId"]: v for v in ec2.fetch_vpcs(aws, REGION)}

        assert vpcs[vpc_id]["Subnets"] == [subnet_id]


class TestS3Fetcher:
    """fetch_buckets"""

    def test_bucket_regions(self, aws):
        client = aws.client("s3")
        client.create_bucket(Bucket="logs-use1")
        client.create_bucket(Bucket="logs-euw1", CreateBucketConfiguration={"LocationConstraint": "eu-west-1"})

        buckets = {b["Name"]: b for b in s3.fetch_buckets(aws, REGION)}

        assert buckets["logs-use1"]["Region"] == "us-east-1"
        assert buckets["logs-euw1"]["Region"] == "eu-west-1"


class TestRdsFetcher:
    """fetch_db_instances"""

    def test_db_instances(self, aws):
        aws.client("rds").create_db_instance(
            DBInstanceIdentifier="orders",
            DBInstanceClass="db.t3.micro",
            Engine="postgres",
            MasterUsername="admin",
            MasterUserPassword="password123",
            AllocatedStorage=20,
        )

        instances = rds.fetch_db_instances(aws, REGION)

        assert [i["DBInstanceIdentifier"] for i in instances] == ["orders"]
        assert instances[0]["DBInstanceArn"].endswith(":db:orders")


class TestContainerFetchers:
    """ECS / EKS fetchers"""

    def test_ecs_clusters(self, aws):
        client = aws.client("ecs")
        client.create_cluster(clusterName="api")
        client.create_cluster(clusterName="jobs")

        names = sorted(c["clusterName"] for c in ecs.fetch_clusters(aws, REGION))

        assert names == ["api", "jobs"]

    def test_eks_clusters(self, aws):
        ec2_client = aws.client("ec2")
        vpc_id = ec2_client.create_vpc(CidrBlock="10.20.0.0/16")["Vpc"]["VpcId"]
        subnet_id = ec2_client.create_subnet(VpcId=vpc_id, CidrBlock="10.20.1.0/24")["Subnet"]["SubnetId"]
        aws.client("eks").create_cluster(
            name="k8s",
            roleArn=f"arn:aws:iam::{MOTO_ACCOUNT}:role/eks",
            resourcesVpcConfig={"subnetIds": [subnet_id]},
        )

        clusters = eks.fetch_clusters(aws, REGION)

        assert [c["name"] for c in clusters] == ["k8s"]
        assert clusters[0]["nodegroups"] == []


class TestCollectorAgainstMoto:
    """Collector with the default fetchers"""

    def test_collect_account(self, aws):
        aws.client("s3").create_bucket(Bucket="inventory-data")
        aws.client("ec2").run_instances(ImageId=_image_id(aws), MinCount=1, MaxCount=1)

        account = AccountDescriptor(account_id=MOTO_ACCOUNT, region=REGION)
        provider = StaticCredentialProvider(
            {MOTO_ACCOUNT: Credentials(access_key_id="testing", secret_access_key="testing")}
        )
        collector = Collector(
            provider,
            config=CollectorConfig(retry_config=RetryConfig(max_retries=0), rate_limit=False, fetch_timeout=30),
        )

        snapshot = collector.collect(account)

        assert snapshot.errors == ()
        assert len(snapshot.resources["compute"]) == 1
        assert [r.identifier for r in snapshot.resources["object-store"]] == ["arn:aws:s3:::inventory-data"]
        # moto creates a default VPC
        assert len(snapshot.resources["network"]) >= 1
